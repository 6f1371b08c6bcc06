"""In-memory sliding-window rate limiting for report endpoints."""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Callable

from fastapi import HTTPException, Request, status


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Allow at most ``max_requests`` per client IP in any ``window_seconds``."""

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, list[float]] = defaultdict(list)

    def _prune(self, key: str, now: float) -> list[float]:
        cutoff = now - self.window_seconds
        hits = [t for t in self._hits[key] if t > cutoff]
        self._hits[key] = hits
        return hits

    def check(self, request: Request) -> None:
        """Raise 429 if the caller is over its budget, else record the hit."""
        now = self._clock()
        key = client_ip(request)
        hits = self._prune(key, now)

        if len(hits) >= self.max_requests:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Max {self.max_requests} requests per {self.window_seconds}s.",
            )

        hits.append(now)

    def reset(self) -> None:
        self._hits.clear()


# Singleton instances
report_limiter = RateLimiter(max_requests=20, window_seconds=60)
email_limiter = RateLimiter(max_requests=5, window_seconds=60)
