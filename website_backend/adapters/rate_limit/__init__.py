"""Rate limiting adapters.

The pipeline talks to ``AbstractRateLimiter``; the in-memory sliding window is
the only backend, state lives for the life of the process.
"""

from website_backend.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from website_backend.adapters.rate_limit.in_memory import SlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
]
