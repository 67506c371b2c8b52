"""Fixed-window request rate limiting."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request, Response

from kpiboard.core.errors import RateLimited


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: float

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_in)),
        }


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Per-identifier fixed-window counter.

    State is process-local and not shared across workers. Access is
    serialized with a lock since sync endpoints run in a thread pool.
    """

    def __init__(
        self,
        *,
        window_seconds: float = 60.0,
        max_requests: int = 100,
        cleanup_threshold: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.cleanup_threshold = cleanup_threshold
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at < now]
        for key in expired:
            del self._windows[key]

    def check(self, identifier: str) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            if len(self._windows) > self.cleanup_threshold:
                self._purge_expired(now)

            window = self._windows.get(identifier)
            if window is None or window.reset_at < now:
                self._windows[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitResult(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_in=self.window_seconds,
                )

            if window.count >= self.max_requests:
                return RateLimitResult(allowed=False, remaining=0, reset_in=window.reset_at - now)

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - window.count,
                reset_in=window.reset_at - now,
            )


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Dependency applying the app-wide limiter keyed by client host."""

    limiter = get_rate_limiter(request)
    identifier = request.client.host if request.client else "unknown"
    result = limiter.check(identifier)
    if not result.allowed:
        headers = result.headers()
        headers["Retry-After"] = str(math.ceil(result.reset_in))
        raise RateLimited("too many requests", headers=headers)
    response.headers.update(result.headers())
