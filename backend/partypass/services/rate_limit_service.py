"""
Fixed-window rate limiters.

Each (client, route) pair gets `limit` requests per `window_seconds`. The
in-memory store is swept by a background task started in the app lifespan;
Redis expires its keys natively.

Redis failure handling:
  On Redis errors the limiter fails open (allows the request) and counts the
  error. Rate limiting is advisory; it must not take the API down with it.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as redis

from partypass.core.config import Settings
from partypass.core.logging import get_logger
from partypass.core.metrics import redis_connection_errors
from partypass.infrastructure.redis_client import create_redis
from partypass.services.interfaces.rate_limiter import RateLimitDecision, RateLimiter

logger = get_logger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiter):
    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[tuple[str, str], _Window] = {}
        self._lock = threading.Lock()

    async def hit(self, client: str, route: str) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            key = (client, route)
            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window

            if window.count >= self.limit:
                retry_after = max(1, int(window.reset_at - now + 0.999))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            window.count += 1
            return RateLimitDecision(allowed=True, remaining=self.limit - window.count)

    async def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, window in self._windows.items() if window.reset_at <= now]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter(RateLimiter):
    KEY_PREFIX = "ratelimit"

    def __init__(self, client: redis.Redis, limit: int, window_seconds: int):
        self.redis = client
        self.limit = limit
        self.window_seconds = window_seconds

    def _key(self, client: str, route: str) -> str:
        return f"{self.KEY_PREFIX}:{route}:{client}"

    async def hit(self, client: str, route: str) -> RateLimitDecision:
        key = self._key(client, route)
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, self.window_seconds)
            if count > self.limit:
                ttl = await self.redis.ttl(key)
                if ttl < 0:
                    # Key lost its expiry (crash between INCR and EXPIRE)
                    await self.redis.expire(key, self.window_seconds)
                    ttl = self.window_seconds
                return RateLimitDecision(allowed=False, remaining=0, retry_after=max(1, ttl))
            return RateLimitDecision(allowed=True, remaining=self.limit - count)
        except redis.RedisError as e:
            redis_connection_errors.inc()
            logger.error("rate_limit_redis_error", error=str(e))
            return RateLimitDecision(allowed=True, remaining=self.limit)

    async def sweep(self) -> int:
        return 0

    async def close(self) -> None:
        await self.redis.aclose()


def build_rate_limiter(settings: Settings, client: Optional[redis.Redis] = None) -> RateLimiter:
    """
    Select the limiter store.

    - memory (default): single-process deployments and tests
    - redis: shared counters across workers; requires REDIS_ENABLED
    """
    backend = settings.RATE_LIMIT_BACKEND.lower()
    if backend == "redis" and settings.REDIS_ENABLED:
        return RedisRateLimiter(
            client or create_redis(settings.REDIS_URL),
            limit=settings.RATE_LIMIT_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
    if backend == "redis":
        logger.warning("rate_limit_redis_disabled", message="REDIS_ENABLED is false, using memory store")
    return InMemoryRateLimiter(
        limit=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
