"""Tests for the request context middleware (correlation id, client identity, timing)."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from conftest import BROWSER_UA, RecordingTransport, StubVerifier
from website_backend.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from website_backend.core.app_factory import create_app
from website_backend.core.config import AppSettings, LogSettings, Settings, SMTPSettings
from website_backend.core.logging import RequestContextFilter
from website_backend.services.mailer import Mailer
from website_backend.services.submission_pipeline import SubmissionPipeline


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def build_client(request_id_header: str = "X-Request-ID") -> TestClient:
    app_settings = AppSettings()
    smtp = SMTPSettings()
    pipeline = SubmissionPipeline(
        settings=app_settings,
        limiter=SlidingWindowRateLimiter(),
        verifier=StubVerifier(),
        mailer=Mailer(smtp_settings=smtp, transport=RecordingTransport()),
    )
    cfg = Settings(
        app=app_settings,
        smtp=smtp,
        log=LogSettings(request_id_header=request_id_header),
        locations={},
    )
    return TestClient(create_app(cfg, pipeline=pipeline, configure_logs=False))


@pytest.fixture
def access_log():
    """Capture middleware records with the production context filter applied."""
    logger = logging.getLogger("website_backend.core.middleware")
    previous_level = logger.level
    logger.setLevel(logging.INFO)
    handler = ListHandler()
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)

    yield handler.records

    logger.removeHandler(handler)
    logger.setLevel(previous_level)


def test_preserves_incoming_request_id_header():
    resp = build_client().get("/health", headers={"X-Request-ID": "test-request-id-123"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "test-request-id-123"


def test_generates_request_id_and_duration_when_missing():
    resp = build_client().get("/health")

    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert len(generated) == 36
    assert float(resp.headers["X-Request-Duration-ms"]) >= 0


def test_request_id_header_comes_from_app_settings():
    client = build_client(request_id_header="X-Correlation-ID")

    resp = client.get("/health", headers={"X-Correlation-ID": "corr-7"})

    assert resp.headers.get("X-Correlation-ID") == "corr-7"
    assert "X-Request-ID" not in resp.headers


def test_rejected_submissions_also_carry_request_id():
    resp = build_client().post(
        "/-/cta", json={}, headers={"User-Agent": "curl/8.5.0", "X-Request-ID": "req-9"}
    )

    assert resp.status_code == 400
    assert resp.headers.get("X-Request-ID") == "req-9"


def test_access_line_carries_client_identity(access_log):
    build_client().get(
        "/health",
        headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Request-ID": "req-42"},
    )

    [record] = [r for r in access_log if r.getMessage() == "http.request"]
    assert record.client_ip == "203.0.113.5"
    assert record.request_id == "req-42"
    assert record.path == "/health"
    assert record.status_code == 200


def test_access_line_falls_back_to_peer_address(access_log):
    build_client().get("/health", headers={"User-Agent": BROWSER_UA})

    [record] = [r for r in access_log if r.getMessage() == "http.request"]
    assert record.client_ip == "testclient"
