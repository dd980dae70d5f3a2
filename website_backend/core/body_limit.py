"""Request body size enforcement."""
from __future__ import annotations

import logging

from fastapi import Request

from website_backend.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def declared_length_exceeds(request: Request, max_bytes: int) -> bool:
    """Whether the Content-Length header announces more than ``max_bytes``.

    A missing or unparsable header is not a rejection by itself; the streamed
    read below still caps what is accepted.
    """
    raw = request.headers.get("content-length")
    if raw is None:
        return False
    try:
        declared = int(raw)
    except ValueError:
        return False
    return declared > max_bytes


async def read_body_limited(request: Request, max_bytes: int) -> bytes:
    """Read the request body in chunks, refusing anything over ``max_bytes``.

    Args:
        request: Incoming request whose body has not been consumed yet.
        max_bytes: Largest accepted body size.

    Returns:
        The full body when it fits.

    Raises:
        ValidationAppError: If more than ``max_bytes`` arrive.
    """
    size = 0
    chunks: list[bytes] = []

    async for chunk in request.stream():
        if not chunk:
            continue
        size += len(chunk)
        if size > max_bytes:
            logger.debug(
                "body_limit.exceeded_while_reading",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise ValidationAppError(
                code="body_too_large",
                message=f"request body exceeds {max_bytes} bytes",
            )
        chunks.append(chunk)

    return b"".join(chunks)
