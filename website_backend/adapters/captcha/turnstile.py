"""Cloudflare Turnstile verifier adapter."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from website_backend.adapters.captcha.base import AbstractVerifier, VerificationOutcome
from website_backend.core.errors import (
    ChallengeFailedError,
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    VerificationError,
    VerificationServiceError,
)

logger = logging.getLogger(__name__)

# Keep diagnostics bounded when an upstream returns a large error page
_MAX_DIAGNOSTIC_BODY = 1024


class TurnstileVerifier(AbstractVerifier):
    """Verify Turnstile tokens against the siteverify endpoint.

    One synchronous POST per call, no retries.
    """

    def __init__(
        self,
        *,
        secret: str,
        endpoint: str,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            secret: Turnstile secret key; empty leaves the verifier unconfigured.
            endpoint: Siteverify URL.
            timeout_seconds: Timeout for the verification request.
            client: Optional preconfigured httpx client (used by tests).
        """
        self.secret = secret
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.secret and self.endpoint)

    def verify(self, token: str, remote_ip: str) -> VerificationOutcome:
        try:
            self._verify(token, remote_ip)
        except VerificationError as exc:
            return VerificationOutcome.failed(exc)
        return VerificationOutcome.passed()

    def _post(self, body: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.endpoint, json=body, timeout=self.timeout_seconds)
        with httpx.Client(timeout=self.timeout_seconds) as client:
            return client.post(self.endpoint, json=body)

    def _verify(self, token: str, remote_ip: str) -> None:
        """Raise the matching VerificationError unless the token is confirmed."""
        if not self.configured:
            raise ConfigurationError(
                code="turnstile_not_configured",
                message="turnstile secret or endpoint is not configured",
            )

        body = {"secret": self.secret, "response": token, "remoteip": remote_ip}
        try:
            response = self._post(body)
        except httpx.RequestError as exc:
            raise TransportError(
                code="turnstile_unreachable",
                message=f"turnstile request failed: {type(exc).__name__}: {exc}",
                details={"endpoint": self.endpoint},
            ) from exc

        if not response.is_success:
            raise VerificationServiceError(
                code="turnstile_bad_status",
                message=f"turnstile verification failed with status {response.status_code}",
                details={
                    "http_status": response.status_code,
                    "response_body": response.text[:_MAX_DIAGNOSTIC_BODY],
                },
            )

        try:
            data: Any = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponseError(
                code="turnstile_malformed_response",
                message=f"turnstile response is not JSON: {exc}",
                details={"response_body": response.text[:_MAX_DIAGNOSTIC_BODY]},
            ) from exc

        if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
            raise MalformedResponseError(
                code="turnstile_malformed_response",
                message="turnstile response has no boolean 'success' field",
                details={"response_body": response.text[:_MAX_DIAGNOSTIC_BODY]},
            )

        if not data["success"]:
            error_codes = data.get("error-codes")
            if not isinstance(error_codes, list):
                error_codes = []
            raise ChallengeFailedError(
                code="turnstile_challenge_failed",
                message="turnstile challenge not passed: " + (", ".join(map(str, error_codes)) or "no error codes"),
                details={"error_codes": [str(c) for c in error_codes]},
            )

        logger.debug("turnstile.verified", extra={"client_ip": remote_ip})
