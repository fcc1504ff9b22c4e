"""
Async Redis client factory.
Owners (e.g. RedisRateLimiter) hold their own client and close it on shutdown.
"""

import redis.asyncio as redis

from partypass.core.config import get_settings


def create_redis(url: str = None) -> redis.Redis:
    """Create a pooled Redis client. Connections are opened lazily."""
    settings = get_settings()
    return redis.from_url(
        url or settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
