"""Rate limiter interfaces.

The submission pipeline depends on this abstraction (not the concrete
implementation) so a shared store could replace the in-memory table later.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Admissions left in the current window (0 when blocked).
        retry_after_seconds: Seconds until the oldest counted request leaves
            the window, when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether to admit it.

        Args:
            key: Client identity (e.g., IP address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def admit(self, key: str) -> bool:
        """Shorthand for ``consume(key).allowed``."""
        return self.consume(key).allowed
