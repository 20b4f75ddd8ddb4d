"""Per-caller fixed-window rate limiting for FastAPI routes."""

import threading
import time
from collections.abc import Callable

from fastapi import HTTPException, Request, status


def caller_key(request: Request) -> str:
    """Identify the caller by client address.

    All callers present the same service-wide API key, so it cannot tell
    them apart.
    """
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimiter:
    """Allow at most ``max_requests`` per caller in each ``window_seconds``.

    Instances are FastAPI dependencies: ``Depends(limiter)``.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        key_func: Callable[[Request], str] = caller_key,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_func = key_func
        self._clock = clock
        # caller -> (count, window reset time)
        self._buckets: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Record one request for *key*; return False if it is over the limit."""
        now = self._clock()
        with self._lock:
            count, reset_at = self._buckets.get(key, (0, 0.0))
            if now >= reset_at:
                self._drop_expired(now)
                self._buckets[key] = (1, now + self.window_seconds)
                return True
            if count >= self.max_requests:
                return False
            self._buckets[key] = (count + 1, reset_at)
            return True

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _drop_expired(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._buckets.items() if now >= reset_at]
        for k in expired:
            del self._buckets[k]

    async def __call__(self, request: Request) -> None:
        if not self.hit(self.key_func(request)):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests, please try again later.",
            )
