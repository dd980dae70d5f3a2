"""Unit tests for the in-memory sliding-window rate limiter."""

import threading
from unittest.mock import Mock

import pytest

from website_backend.adapters.rate_limit.in_memory import SlidingWindowRateLimiter


def test_allows_up_to_limit_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    results = [limiter.consume("203.0.113.7") for _ in range(5)]
    assert all(r.allowed for r in results)
    assert results[-1].remaining == 0

    blocked = limiter.consume("203.0.113.7")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 60


def test_admits_again_after_window_elapses() -> None:
    clock = Mock(return_value=1000.0)
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    for _ in range(5):
        assert limiter.admit("k") is True
    assert limiter.admit("k") is False

    clock.return_value = 1061.0
    assert limiter.admit("k") is True


def test_window_slides_instead_of_resetting() -> None:
    clock = Mock(return_value=40.0)
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.admit("k") is True
    clock.return_value = 50.0
    assert limiter.admit("k") is True

    # A fixed window starting at 60 would reset here; the sliding one still
    # counts the requests made at t=40 and t=50.
    clock.return_value = 70.0
    assert limiter.admit("k") is False

    clock.return_value = 111.0
    assert limiter.admit("k") is True


def test_rejected_attempts_still_count() -> None:
    clock = Mock(return_value=0.0)
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.admit("k") is True
    clock.return_value = 9.0
    assert limiter.admit("k") is False

    # The first hit has expired but the rejected one at t=9 has not
    clock.return_value = 15.0
    assert limiter.admit("k") is False

    clock.return_value = 30.0
    assert limiter.admit("k") is True


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.admit("k1") is True
    assert limiter.admit("k1") is False

    assert limiter.admit("k2") is True


def test_disabled_limiter_admits_without_bookkeeping() -> None:
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, enabled=False)

    for _ in range(20):
        assert limiter.admit("k") is True
    assert limiter.tracked_keys() == 0


def test_concurrent_admissions_never_exceed_limit() -> None:
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=Mock(return_value=1.0))
    admitted: list[bool] = []
    lock = threading.Lock()
    barrier = threading.Barrier(20)

    def worker() -> None:
        barrier.wait()
        allowed = limiter.admit("same-ip")
        with lock:
            admitted.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert admitted.count(True) == 5
    assert admitted.count(False) == 15


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(**kwargs)


def test_empty_key_is_rejected() -> None:
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")
