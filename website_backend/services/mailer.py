"""Compose and deliver submission emails."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from email.utils import formatdate
from typing import Mapping

from website_backend.adapters.mail.base import AbstractMailTransport
from website_backend.core.config import SMTPSettings
from website_backend.utils.sanitizer import escape_field_name

logger = logging.getLogger(__name__)

_DOCUMENT_HEAD = """<html>
  <h1>New Submission</h1>
  <table width="600" style="border:1px solid #333">
    <thead>
      <tr><th align="left">Field</th><th align="left">Value</th></tr>
    </thead>
    <tbody>
"""

_DOCUMENT_TAIL = """    </tbody>
  </table>
</html>
"""

_ROW = """      <tr>
        <td><code>{name}</code></td>
        <td><pre>{value}</pre></td>
      </tr>
"""


def render_submission_html(fields: Mapping[str, str]) -> str:
    """Render already-sanitized fields as an HTML table.

    Rows are ordered by field name so identical submissions render
    identically. Names are escaped here, values are expected to be sanitized.
    """
    rows = "".join(
        _ROW.format(name=escape_field_name(name), value=fields[name]) for name in sorted(fields)
    )
    return _DOCUMENT_HEAD + rows + _DOCUMENT_TAIL


def build_message(*, from_address: str, to_address: str, subject: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = from_address
    message["To"] = to_address
    message["Subject"] = subject
    message["Date"] = formatdate(localtime=False)
    message.set_content(html, subtype="html", charset="utf-8")
    return message


class Mailer:
    """Turn sanitized submissions into emails and hand them to a transport."""

    def __init__(
        self,
        *,
        smtp_settings: SMTPSettings,
        transport: AbstractMailTransport,
        subject: str = "New CTA Submission",
    ) -> None:
        self.smtp_settings = smtp_settings
        self.transport = transport
        self.subject = subject

    def deliver(self, fields: Mapping[str, str]) -> None:
        """Send one email containing ``fields``.

        Args:
            fields: Sanitized field name -> value mapping.

        Raises:
            DeliveryError: Propagated from the transport on any failure.
        """
        message = build_message(
            from_address=self.smtp_settings.from_address,
            to_address=self.smtp_settings.to_address,
            subject=self.subject,
            html=render_submission_html(fields),
        )
        self.transport.send(message)
        logger.info("mailer.delivered", extra={"field_count": len(fields)})
