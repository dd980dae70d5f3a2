"""SMTP mail transport adapter."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from website_backend.adapters.mail.base import AbstractMailTransport
from website_backend.core.config import SMTPSettings
from website_backend.core.errors import DeliveryError

logger = logging.getLogger(__name__)

# Hosts where credentials may be sent over an unencrypted session
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def build_tls_context(verify: bool) -> ssl.SSLContext:
    """TLS context for implicit TLS and STARTTLS.

    Args:
        verify: When False, hostname and certificate checks are disabled.
    """
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class SMTPMailTransport(AbstractMailTransport):
    """Send mail over one SMTP session per message.

    Encryption modes:
        ssl: implicit TLS from the first byte (``SMTP_SSL``).
        starttls: plaintext connect, upgraded only when the server advertises
            STARTTLS. Servers that do not offer it get the message in plaintext.
        none: plaintext throughout.

    Credentials are only sent over TLS, or in plaintext to a local relay.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        self.settings = settings

    def _connect(self) -> smtplib.SMTP:
        cfg = self.settings
        if cfg.encryption == "ssl":
            return smtplib.SMTP_SSL(
                cfg.server,
                cfg.port,
                timeout=cfg.timeout_seconds,
                context=build_tls_context(cfg.verify_tls),
            )
        return smtplib.SMTP(cfg.server, cfg.port, timeout=cfg.timeout_seconds)

    def _maybe_starttls(self, smtp: smtplib.SMTP) -> bool:
        smtp.ehlo()
        if smtp.has_extn("starttls"):
            smtp.starttls(context=build_tls_context(self.settings.verify_tls))
            smtp.ehlo()
            return True
        # TODO: add a setting to refuse delivery when STARTTLS is not offered
        logger.warning(
            "smtp.starttls_not_offered",
            extra={"server": self.settings.server, "port": self.settings.port},
        )
        return False

    def _login(self, smtp: smtplib.SMTP, encrypted: bool) -> None:
        cfg = self.settings
        if not encrypted and cfg.server.lower() not in LOCAL_HOSTS:
            raise DeliveryError(
                code="smtp_insecure_auth",
                message="refusing to send credentials over an unencrypted connection",
                details={"server": cfg.server},
            )
        smtp.login(cfg.username, cfg.password)

    def send(self, message: EmailMessage) -> None:
        cfg = self.settings
        try:
            with self._connect() as smtp:
                encrypted = cfg.encryption == "ssl"
                if cfg.encryption == "starttls":
                    encrypted = self._maybe_starttls(smtp)
                if cfg.username:
                    self._login(smtp, encrypted)
                smtp.send_message(message, from_addr=cfg.from_address, to_addrs=[cfg.to_address])
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(
                code="smtp_delivery_failed",
                message=f"smtp delivery failed: {type(exc).__name__}: {exc}",
                details={"server": cfg.server},
            ) from exc

        logger.info(
            "smtp.sent",
            extra={"server": cfg.server, "port": cfg.port, "encryption": cfg.encryption},
        )
