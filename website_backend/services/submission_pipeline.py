"""Submission protection pipeline.

Runs the checks for one form submission in a fixed order and stops at the
first failure:

    user agent -> rate limit -> body size -> JSON decode -> token present
    -> challenge verification -> sanitize + deliver

Each check returns either None (continue) or a SubmissionResult describing
the rejection. The caller only ever sees the status code and a generic body;
the reason is written to the log together with the client identity and path.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import Request

from website_backend.adapters.captcha.base import AbstractVerifier
from website_backend.adapters.rate_limit.base import AbstractRateLimiter
from website_backend.core.body_limit import declared_length_exceeds, read_body_limited
from website_backend.core.client_identity import client_ip
from website_backend.core.config import AppSettings
from website_backend.core.errors import DeliveryError, ValidationAppError
from website_backend.schemas.submission import SubmissionRequest
from website_backend.services.mailer import Mailer
from website_backend.utils.sanitizer import sanitize_payload

logger = logging.getLogger(__name__)

# Lower-cased substrings that mark a User-Agent as automated
BLOCKED_USER_AGENT_MARKERS = ("curl/", "python-requests", "bot")


class Outcome(str, Enum):
    """Terminal state of a submission, in pipeline order."""

    UA_REJECTED = "ua_rejected"
    RATE_LIMITED = "rate_limited"
    BODY_TOO_LARGE = "body_too_large"
    BAD_PAYLOAD = "bad_payload"
    MISSING_TOKEN = "missing_token"
    UNVERIFIED_TOKEN = "unverified_token"
    DELIVERY_FAILED = "delivery_failed"
    ACCEPTED = "accepted"


_STATUS_BY_OUTCOME = {
    Outcome.UA_REJECTED: 400,
    Outcome.RATE_LIMITED: 429,
    Outcome.BODY_TOO_LARGE: 400,
    Outcome.BAD_PAYLOAD: 400,
    Outcome.MISSING_TOKEN: 400,
    Outcome.UNVERIFIED_TOKEN: 400,
    Outcome.DELIVERY_FAILED: 500,
    Outcome.ACCEPTED: 204,
}


@dataclass(frozen=True)
class SubmissionResult:
    outcome: Outcome
    reason: str = ""
    retry_after_seconds: int | None = None

    @property
    def status_code(self) -> int:
        return _STATUS_BY_OUTCOME[self.outcome]

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPTED


def _reject(outcome: Outcome, reason: str, **kwargs) -> SubmissionResult:
    return SubmissionResult(outcome=outcome, reason=reason, **kwargs)


def is_blocked_user_agent(user_agent: str) -> bool:
    """True for an empty User-Agent or one containing a blocked marker."""
    if not user_agent:
        return True
    lowered = user_agent.lower()
    return any(marker in lowered for marker in BLOCKED_USER_AGENT_MARKERS)


def decode_submission(body: bytes) -> SubmissionRequest:
    """Decode a submission body.

    An empty body is a clean end of input and yields an empty request, which
    the token check then rejects.

    Raises:
        ValueError: For invalid JSON, invalid UTF-8 or a wrongly shaped object.
        RecursionError: For absurdly nested JSON.
    """
    if not body.strip():
        return SubmissionRequest()
    data = json.loads(body)
    if data is None:
        return SubmissionRequest()
    return SubmissionRequest.model_validate(data)


class SubmissionPipeline:
    """Orchestrates the protection checks and delivery for submissions.

    The limiter passed in holds the only cross-request state; build one
    pipeline per application so tests get a fresh table per app instance.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        limiter: AbstractRateLimiter,
        verifier: AbstractVerifier,
        mailer: Mailer,
    ) -> None:
        self.settings = settings
        self.limiter = limiter
        self.verifier = verifier
        self.mailer = mailer

    async def process(self, request: Request) -> SubmissionResult:
        """Run every check for ``request`` and deliver it when all pass."""
        identity = client_ip(request)
        result = await self._run(request, identity)

        log_fields = {
            "client_ip": identity,
            "path": request.url.path,
            "outcome": result.outcome.value,
        }
        if result.accepted:
            logger.info("submission.accepted", extra=log_fields)
        elif result.outcome is Outcome.DELIVERY_FAILED:
            logger.error("submission.delivery_failed", extra={**log_fields, "reason": result.reason})
        else:
            logger.warning("submission.refused", extra={**log_fields, "reason": result.reason})
        return result

    async def _run(self, request: Request, identity: str) -> SubmissionResult:
        rejection = (
            self._check_user_agent(request)
            or self._check_rate_limit(identity)
            or self._check_declared_length(request)
        )
        if rejection is not None:
            return rejection

        try:
            body = await read_body_limited(request, self.settings.max_body_size)
        except ValidationAppError as exc:
            return _reject(Outcome.BODY_TOO_LARGE, exc.message)

        try:
            submission = decode_submission(body)
        except (ValueError, RecursionError) as exc:
            return _reject(Outcome.BAD_PAYLOAD, f"bad json: {exc}")

        if not submission.token:
            return _reject(Outcome.MISSING_TOKEN, "missing token")

        rejection = await self._check_token(submission.token, identity)
        if rejection is not None:
            return rejection

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.mailer.deliver, sanitize_payload(submission.payload))
        except DeliveryError as exc:
            return _reject(Outcome.DELIVERY_FAILED, exc.message)

        return SubmissionResult(outcome=Outcome.ACCEPTED)

    def _check_user_agent(self, request: Request) -> SubmissionResult | None:
        if not self.settings.block_bot_user_agents:
            return None
        if is_blocked_user_agent(request.headers.get("user-agent", "")):
            return _reject(Outcome.UA_REJECTED, "fake user agent")
        return None

    def _check_rate_limit(self, identity: str) -> SubmissionResult | None:
        result = self.limiter.consume(identity)
        if result.allowed:
            return None
        return _reject(
            Outcome.RATE_LIMITED,
            "rate limit",
            retry_after_seconds=result.retry_after_seconds,
        )

    def _check_declared_length(self, request: Request) -> SubmissionResult | None:
        if declared_length_exceeds(request, self.settings.max_body_size):
            return _reject(Outcome.BODY_TOO_LARGE, "content-length too large")
        return None

    async def _check_token(self, token: str, identity: str) -> SubmissionResult | None:
        loop = asyncio.get_running_loop()
        try:
            outcome = await loop.run_in_executor(None, self.verifier.verify, token, identity)
        except Exception as exc:
            # Verifiers should not raise; fail closed if one does
            logger.exception("submission.verifier_crashed", extra={"client_ip": identity})
            return _reject(Outcome.UNVERIFIED_TOKEN, f"verification crashed: {type(exc).__name__}")

        if outcome.success:
            return None
        if outcome.error is not None:
            reason = f"verification failed [{outcome.error.code}]: {outcome.error.message}"
        else:
            reason = "verification failed"
        return _reject(Outcome.UNVERIFIED_TOKEN, reason)
