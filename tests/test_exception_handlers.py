"""Tests for global exception handlers.

Validates that every error type escaping a route is answered with the fixed
generic body and the right status code, with no information leakage.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from website_backend.core.errors import (
    AppError,
    ChallengeFailedError,
    DeliveryError,
    ValidationAppError,
)
from website_backend.core.exception_handlers import (
    GENERIC_ERROR_BODY,
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    def test_validation_error_returns_generic_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise ValidationAppError(code="body_too_large", message="request body exceeds 4096 bytes")

        response = client.get("/test-validation")

        assert response.status_code == 400
        assert response.text == GENERIC_ERROR_BODY
        assert "4096" not in response.text

    def test_verification_error_returns_generic_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-verification")
        async def endpoint():
            raise ChallengeFailedError(code="turnstile_challenge_failed", message="not passed")

        response = client.get("/test-verification")

        assert response.status_code == 400
        assert response.text == GENERIC_ERROR_BODY

    def test_delivery_error_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-delivery")
        async def endpoint():
            raise DeliveryError(code="smtp_delivery_failed", message="smtp.example.com refused")

        response = client.get("/test-delivery")

        assert response.status_code == 500
        assert response.text == GENERIC_ERROR_BODY
        assert "smtp.example.com" not in response.text


class TestGeneralExceptionHandler:
    def test_unexpected_exception_is_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def endpoint():
            raise RuntimeError("database connection failed")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.text == GENERIC_ERROR_BODY

    def test_general_exception_handler_never_leaks_details(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("secret detail")))

        body = bytes(response.body).decode()
        assert response.status_code == 500
        assert "secret detail" not in body
        assert "ValueError" not in body
        assert "Traceback" not in body


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
