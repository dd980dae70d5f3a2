"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any import that builds settings so the
developer's .env files and real secrets never leak into tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
# Cloudflare dummy secret format: 35 characters
os.environ.setdefault("TURNSTILE_SECRET", "1x" + "0" * 31 + "AA")
os.environ.setdefault("TURNSTILE_ENDPOINT", "https://verify.invalid/siteverify")
os.environ.setdefault("SMTP_SERVER", "smtp.invalid")
os.environ.setdefault("SMTP_FROM_ADDRESS", "site@example.com")
os.environ.setdefault("SMTP_TO_ADDRESS", "owner@example.com")
os.environ.setdefault("LOG_FORMAT", "json")

from email.message import EmailMessage  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from website_backend.adapters.captcha.base import AbstractVerifier, VerificationOutcome  # noqa: E402
from website_backend.adapters.mail.base import AbstractMailTransport  # noqa: E402
from website_backend.adapters.rate_limit.in_memory import SlidingWindowRateLimiter  # noqa: E402
from website_backend.core.app_factory import create_app  # noqa: E402
from website_backend.core.config import AppSettings, Settings, SMTPSettings  # noqa: E402
from website_backend.core.errors import DeliveryError  # noqa: E402
from website_backend.services.mailer import Mailer  # noqa: E402
from website_backend.services.submission_pipeline import SubmissionPipeline  # noqa: E402

BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


class StubVerifier(AbstractVerifier):
    """Verifier double that records calls and returns a fixed outcome."""

    def __init__(self, outcome: VerificationOutcome | None = None) -> None:
        self.outcome = outcome or VerificationOutcome.passed()
        self.calls: list[tuple[str, str]] = []

    def verify(self, token: str, remote_ip: str) -> VerificationOutcome:
        self.calls.append((token, remote_ip))
        return self.outcome


class RecordingTransport(AbstractMailTransport):
    """Mail transport double that keeps every message it is asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise DeliveryError(code="smtp_delivery_failed", message="connection refused")
        self.messages.append(message)


@pytest.fixture
def browser_headers() -> dict[str, str]:
    return {"User-Agent": BROWSER_UA}


@pytest.fixture
def stub_verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        submit_path="/-/cta",
        max_body_size=4096,
        block_bot_user_agents=True,
        rate_limit_enabled=True,
        rate_limit_requests=5,
        rate_limit_window_seconds=60,
    )


@pytest.fixture
def smtp_settings() -> SMTPSettings:
    return SMTPSettings(
        server="smtp.invalid",
        from_address="site@example.com",
        to_address="owner@example.com",
    )


@pytest.fixture
def make_client(
    app_settings: AppSettings,
    smtp_settings: SMTPSettings,
    stub_verifier: StubVerifier,
    transport: RecordingTransport,
) -> Callable[..., TestClient]:
    """Build a TestClient around a fresh pipeline wired to test doubles."""

    def _make(
        *,
        verifier: AbstractVerifier | None = None,
        mail_transport: AbstractMailTransport | None = None,
        **app_overrides,
    ) -> TestClient:
        cfg_app = app_settings.model_copy(update=app_overrides)
        cfg = Settings(app=cfg_app, smtp=smtp_settings, locations={})
        pipeline = SubmissionPipeline(
            settings=cfg_app,
            limiter=SlidingWindowRateLimiter(
                limit=cfg_app.rate_limit_requests,
                window_seconds=cfg_app.rate_limit_window_seconds,
                enabled=cfg_app.rate_limit_enabled,
            ),
            verifier=verifier or stub_verifier,
            mailer=Mailer(
                smtp_settings=smtp_settings,
                transport=mail_transport or transport,
                subject=cfg_app.mail_subject,
            ),
        )
        app = create_app(cfg, pipeline=pipeline, configure_logs=False)
        return TestClient(app)

    return _make
