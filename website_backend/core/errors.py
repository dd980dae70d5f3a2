"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling and logging. None of these messages are ever
returned to HTTP clients; they exist for the operator log stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional to keep shapes consistent without forcing every
    error to carry every field.
    """

    code: str
    message: str
    hint: str
    http_status: int
    response_body: str
    error_codes: list[str]
    endpoint: str
    server: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class VerificationError(AppError):
    """Base for every way a challenge verification can fail."""


class ConfigurationError(VerificationError):
    """Verifier secret or endpoint is not configured."""


class TransportError(VerificationError):
    """The verification service could not be reached (DNS, connect, timeout)."""


class VerificationServiceError(VerificationError):
    """The verification service answered with a non-2xx status."""


class MalformedResponseError(VerificationError):
    """A 2xx verification response could not be decoded."""


class ChallengeFailedError(VerificationError):
    """The service decoded fine but reported the challenge as not passed."""


class DeliveryError(AppError):
    """Raised when the mail transport, login or SMTP dialogue fails."""
