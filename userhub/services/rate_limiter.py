"""
Fixed-window rate limiting for the auth endpoints.

Only failed requests (status >= 400) are counted, so a client that keeps
logging in successfully is never locked out. Counters live in Redis when
REDIS_URL is set, otherwise in process memory. An unreachable Redis
fails open: requests are let through and nothing is counted.
"""
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from userhub.config import settings
from userhub.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)


def _rate_key(scope: str, client_id: str) -> str:
    digest = hashlib.sha256(f"{scope}:{client_id}".encode()).hexdigest()
    return f"rate:auth:{digest}"


class RateLimiter(ABC):
    """Counts failures per key inside a fixed window."""

    def __init__(self, max_failures: int, window_seconds: int):
        self.max_failures = max_failures
        self.window_seconds = window_seconds

    @abstractmethod
    async def failures(self, key: str) -> int:
        """Failures recorded for key in the current window."""

    @abstractmethod
    async def record_failure(self, key: str) -> int:
        """Count one failure, returning the new total."""

    async def is_limited(self, key: str) -> bool:
        return await self.failures(key) >= self.max_failures

    async def close(self) -> None:
        pass


class MemoryRateLimiter(RateLimiter):
    """Single-process limiter."""

    def __init__(self, max_failures: int, window_seconds: int):
        super().__init__(max_failures, window_seconds)
        self._windows: Dict[str, Tuple[float, int]] = {}

    def _current(self, key: str) -> Tuple[float, int]:
        now = time.monotonic()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        return started, count

    async def failures(self, key: str) -> int:
        return self._current(key)[1]

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [
            key for key, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    async def record_failure(self, key: str) -> int:
        self._prune()
        started, count = self._current(key)
        self._windows[key] = (started, count + 1)
        return count + 1


class RedisRateLimiter(RateLimiter):
    """Redis-backed limiter shared by all workers."""

    def __init__(self, redis_url: str, max_failures: int, window_seconds: int):
        super().__init__(max_failures, window_seconds)
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
        )

    async def failures(self, key: str) -> int:
        try:
            value = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Rate limiter could not read from Redis, allowing request: {e}")
            return 0
        return int(value) if value else 0

    async def record_failure(self, key: str) -> int:
        pipe = self.client.pipeline()
        pipe.incr(key)
        # Window starts with the first failure
        pipe.expire(key, self.window_seconds, nx=True)
        try:
            count, _ = await pipe.execute()
        except RedisError as e:
            logger.warning(f"Rate limiter could not record failure in Redis: {e}")
            return 0
        return int(count)

    async def close(self) -> None:
        await self.client.aclose()


def create_rate_limiter() -> Optional[RateLimiter]:
    """Limiter from configuration, or None when rate limiting is disabled."""
    if not settings.RATE_LIMIT_ENABLED:
        return None
    if settings.REDIS_URL:
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(
            settings.REDIS_URL,
            settings.AUTH_RATE_LIMIT_MAX,
            settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
        )
    logger.info("Using in-memory rate limiter")
    return MemoryRateLimiter(
        settings.AUTH_RATE_LIMIT_MAX,
        settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    )


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    """Reject clients with too many failed attempts on the protected paths."""

    def __init__(self, app, limiter: RateLimiter, paths: Iterable[str]):
        super().__init__(app)
        self.limiter = limiter
        self.paths = frozenset(paths)

    async def dispatch(self, request: Request, call_next):
        if request.method != "POST" or request.url.path not in self.paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = _rate_key(request.url.path, client_ip)

        if await self.limiter.is_limited(key):
            logger.warning(f"Auth rate limit exceeded for IP: {client_ip}")
            exc = RateLimitError()
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"message": exc.message, "code": exc.code},
            )

        response = await call_next(request)
        if response.status_code >= 400:
            await self.limiter.record_failure(key)
        return response
