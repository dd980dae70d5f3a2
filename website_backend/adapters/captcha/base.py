"""Challenge verification interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from website_backend.core.errors import VerificationError


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verifying a challenge token.

    Attributes:
        success: True only when the service confirmed the token.
        error: Why verification did not succeed; for the operator log only.
    """

    success: bool
    error: VerificationError | None = None

    @classmethod
    def passed(cls) -> "VerificationOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, error: VerificationError) -> "VerificationOutcome":
        return cls(success=False, error=error)


class AbstractVerifier(ABC):
    """Interface for CAPTCHA/challenge verifiers.

    Implementations fail closed: every transport or protocol anomaly becomes a
    failed outcome instead of an exception.
    """

    @abstractmethod
    def verify(self, token: str, remote_ip: str) -> VerificationOutcome:
        """Verify ``token`` for the client at ``remote_ip``.

        Blocks until the service answers or the request times out.
        """
        raise NotImplementedError
