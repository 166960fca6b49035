"""
Per-client cooldown filter for the payment endpoints.

One ``RateLimiter`` lives on ``app.state`` for the lifetime of the
application. It is process-local: every worker keeps its own map.
"""
import random
import time
from typing import Callable, Dict, Optional

import structlog
from fastapi import Depends, Request

from impactmarket.errors import ApiError

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Accept at most one request per ``cooldown`` seconds for each key.

    Accepted hits record their timestamp; rejected hits leave it alone.
    A fraction (``sweep_probability``) of accepted hits also sweeps out
    entries older than ``retention`` seconds to keep the map bounded.
    """

    def __init__(
        self,
        cooldown: float = 1.0,
        retention: float = 60.0,
        sweep_probability: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        rand: Callable[[], float] = random.random,
    ):
        self.cooldown = cooldown
        self.retention = retention
        self.sweep_probability = sweep_probability
        self._clock = clock
        self._rand = rand
        self._hits: Dict[str, float] = {}

    def hit(self, key: str) -> bool:
        now = self._clock()
        last = self._hits.get(key)
        if last is not None and now - last < self.cooldown:
            return False

        self._hits[key] = now
        if self._rand() < self.sweep_probability:
            self.sweep(now)
        return True

    def sweep(self, now: Optional[float] = None) -> int:
        if now is None:
            now = self._clock()
        cutoff = now - self.retention
        stale = [key for key, ts in list(self._hits.items()) if ts < cutoff]
        for key in stale:
            self._hits.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._hits.clear()

    def __len__(self) -> int:
        return len(self._hits)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def enforce_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)):
    host = request.client.host if request.client else "unknown"
    key = f"{host}:{request.url.path}"

    if not limiter.hit(key):
        logger.warning("rate_limit_exceeded", client_host=host, path=request.url.path)
        raise ApiError(429, "Too many requests, please try again later", "Rate limit exceeded")
