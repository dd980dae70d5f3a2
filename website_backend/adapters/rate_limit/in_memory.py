"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole table.
- Entries are pruned lazily when their key is seen again; keys are never
  evicted, so memory grows with the number of distinct clients.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from website_backend.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Exact sliding-window limiter keyed by client identity.

    Every call is counted, including rejected ones, so a client hammering the
    endpoint keeps itself locked out until it slows down.
    """

    def __init__(
        self,
        *,
        limit: int = 5,
        window_seconds: float = 60,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum admitted requests per window.
            window_seconds: Length of the trailing window in seconds.
            enabled: When False every request is admitted and nothing is recorded.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._hits_by_key: dict[str, deque[float]] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def tracked_keys(self) -> int:
        """Number of identities currently held in the table."""
        with self._lock:
            return len(self._hits_by_key)

    def consume(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` and decide admission.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if not self._enabled:
            return RateLimitResult(allowed=True, limit=self._limit, remaining=self._limit)

        with self._lock:
            now = self._clock()
            hits = self._hits_by_key.get(key)
            if hits is None:
                hits = self._hits_by_key[key] = deque()

            cutoff = now - self._window_seconds
            while hits and hits[0] < cutoff:
                hits.popleft()
            hits.append(now)
            count = len(hits)
            oldest = hits[0]

        if count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - count,
            )

        retry_after = max(1, int(math.ceil(oldest + self._window_seconds - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            retry_after_seconds=retry_after,
        )
