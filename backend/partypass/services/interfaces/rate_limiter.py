"""
Rate limiter interface.
Counters are keyed by (client, route) and reset on a fixed window.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter(ABC):
    """
    Interface for rate limiter stores.

    Implementations:
    - InMemoryRateLimiter: per-process dict, swept periodically
    - RedisRateLimiter: shared counters with native key expiry
    """

    limit: int
    window_seconds: int

    @abstractmethod
    async def hit(self, client: str, route: str) -> RateLimitDecision:
        """
        Count one request from `client` against `route`.

        Returns:
            Decision with allowed=False once the window's budget is spent
        """
        pass

    @abstractmethod
    async def sweep(self) -> int:
        """
        Drop expired windows.

        Returns:
            Number of entries removed
        """
        pass

    async def close(self) -> None:
        pass
