"""Mail transport adapters."""

from website_backend.adapters.mail.base import AbstractMailTransport
from website_backend.adapters.mail.smtp import SMTPMailTransport

__all__ = [
    "AbstractMailTransport",
    "SMTPMailTransport",
]
