"""Blunt regex sanitizing of submitted form fields.

This is a denylist, not an HTML parser: anything that looks like a tag is
dropped, links are dropped, and control bytes become spaces. Obfuscated or
malformed markup that does not match the patterns passes through.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

_TAG_RE = re.compile(r"<[^>]*>")
_URL_RE = re.compile(r"https?://\S+")
# Every C0 control byte except LF (0x0A) and CR (0x0D)
_CTRL_RE = re.compile(r"[\x00-\x09\x0B\x0C\x0E-\x1F]")


def _to_text(value: Any) -> str:
    """Render a payload value as text before pattern replacement."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    try:
        return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError):
        # Non-JSON types, circular references, mixed-type keys
        pass
    try:
        return str(value)
    except Exception:
        return repr(value)


def sanitize(value: Any) -> str:
    """Strip tags, URLs and control bytes from a field value.

    Non-string values are pretty-printed as JSON with sorted keys first.
    Never raises.

    Examples:
        >>> sanitize("visit http://evil.example/x now")
        'visit  now'
        >>> sanitize({"b": 1, "a": "<b>x</b>"})
        '{\\n  "a": "x",\\n  "b": 1\\n}'
    """
    text = _to_text(value)
    text = _TAG_RE.sub("", text)
    text = _URL_RE.sub("", text)
    text = _CTRL_RE.sub(" ", text)
    return text.strip()


def escape_field_name(name: Any) -> str:
    """Escape angle brackets in a field name.

    Field names are escaped when the mail is rendered; this is their only
    protection.
    """
    return str(name).replace("<", "&lt;").replace(">", "&gt;")


def sanitize_payload(payload: Mapping[Any, Any]) -> dict[str, str]:
    """Sanitize every field of a submission payload.

    Names are kept as submitted so two fields never collapse into one row;
    they are escaped by the renderer.

    Returns:
        Mapping of field name to sanitized value.
    """
    return {str(name): sanitize(value) for name, value in payload.items()}
