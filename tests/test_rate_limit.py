from __future__ import annotations

import pytest

from statement_import.audit import RecordingAuditLog
from statement_import.errors import RateLimitExceeded
from statement_import.rate_limit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t


def test_eleventh_attempt_in_window_is_rejected():
    clock = FakeClock()
    audit = RecordingAuditLog(forward=False)
    limiter = RateLimiter(10, 3600, clock=clock, audit=audit)

    for _ in range(10):
        limiter.acquire("u1")
    assert limiter.remaining("u1") == 0

    clock.t += 600
    with pytest.raises(RateLimitExceeded) as ei:
        limiter.acquire("u1")
    assert ei.value.user_key == "u1"
    assert ei.value.retry_after == pytest.approx(3000)
    assert audit.names() == ["rate_limit_exceeded"]
    assert audit.events[0][1]["user_id"] == "u1"

    # Other users have their own window.
    assert limiter.check("u2") is True


def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)
    assert limiter.check("u1")
    assert limiter.check("u1")
    assert not limiter.check("u1")
    assert limiter.retry_after("u1") == pytest.approx(60)

    clock.t += 60
    assert limiter.remaining("u1") == 2
    assert limiter.retry_after("u1") == 0.0
    assert limiter.check("u1")
    assert limiter.remaining("u1") == 1


def test_reset():
    limiter = RateLimiter(1, 60, clock=FakeClock())
    limiter.acquire("u1")
    limiter.acquire("u2")

    limiter.reset("u1")
    limiter.acquire("u1")
    with pytest.raises(RateLimitExceeded):
        limiter.acquire("u2")

    limiter.reset()
    limiter.acquire("u2")


def test_invalid_configuration():
    with pytest.raises(ValueError):
        RateLimiter(0)
    with pytest.raises(ValueError):
        RateLimiter(1, 0)
