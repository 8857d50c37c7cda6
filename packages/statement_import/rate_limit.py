"""Rolling-window import rate limiting, one window per user.

A window opens on a user's first attempt and lasts ``window_seconds``. Each
accepted attempt increments the count; once ``max_attempts`` is reached
further attempts are rejected until the window has elapsed, at which point
the next attempt opens a fresh window.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from .audit import AuditSink, emit, utc_timestamp
from .config import DEFAULT_MAX_IMPORTS_PER_HOUR, DEFAULT_WINDOW_SECONDS
from .errors import RateLimitExceeded
from .logging_setup import get_logger

_logger = get_logger("statement_import.rate_limit")


@dataclass(slots=True)
class RateLimitWindow:
    user_key: str
    count: int
    window_start: float


class RateLimiter:
    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_IMPORTS_PER_HOUR,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        audit: AuditSink | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._audit = audit
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def _current(self, user_key: str, now: float) -> RateLimitWindow | None:
        window = self._windows.get(user_key)
        if window is not None and now - window.window_start >= self.window_seconds:
            del self._windows[user_key]
            return None
        return window

    def check(self, user_key: str) -> bool:
        """Record one attempt; return ``False`` when the user is over the limit."""

        with self._lock:
            now = self._clock()
            window = self._current(user_key, now)
            if window is None:
                self._windows[user_key] = RateLimitWindow(user_key, 1, now)
                return True
            if window.count >= self.max_attempts:
                retry_after = self.window_seconds - (now - window.window_start)
            else:
                window.count += 1
                return True

        _logger.warning("rate limit exceeded user=%s retry_after=%.0fs", user_key, retry_after)
        emit(
            self._audit,
            "rate_limit_exceeded",
            {
                "timestamp": utc_timestamp(),
                "user_id": user_key,
                "max_attempts": self.max_attempts,
                "retry_after": retry_after,
            },
        )
        return False

    def acquire(self, user_key: str) -> None:
        """Like :meth:`check` but raise :class:`RateLimitExceeded` when over the limit."""

        if not self.check(user_key):
            raise RateLimitExceeded(user_key, retry_after=self.retry_after(user_key))

    def remaining(self, user_key: str) -> int:
        with self._lock:
            window = self._current(user_key, self._clock())
            used = window.count if window is not None else 0
        return max(0, self.max_attempts - used)

    def retry_after(self, user_key: str) -> float:
        """Seconds until the user's window resets (0 when not limited)."""

        with self._lock:
            now = self._clock()
            window = self._current(user_key, now)
            if window is None or window.count < self.max_attempts:
                return 0.0
            return max(0.0, self.window_seconds - (now - window.window_start))

    def reset(self, user_key: str | None = None) -> None:
        with self._lock:
            if user_key is None:
                self._windows.clear()
            else:
                self._windows.pop(user_key, None)


__all__ = ["RateLimitWindow", "RateLimiter"]
