"""
Request-scoped dependencies backed by objects built once at startup.

The notification dispatcher and rate limiter live on `app.state` so tests can
swap them per test without patching module globals.
"""

from fastapi import Depends, Request

from partypass.core.config import get_settings
from partypass.core.exceptions import RateLimited
from partypass.core.logging import get_logger
from partypass.core.metrics import record_rate_limited
from partypass.services.interfaces.rate_limiter import RateLimiter
from partypass.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)
settings = get_settings()


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for") if settings.TRUST_PROXY_HEADERS else None
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def rate_limit(route: str):
    """Dependency factory: one fixed-window budget per (client, route)."""

    async def dependency(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        client = client_identifier(request)
        decision = await limiter.hit(client, route)
        if not decision.allowed:
            record_rate_limited(route)
            logger.warning("rate_limited", client=client, route=route, retry_after=decision.retry_after)
            raise RateLimited(decision.retry_after)

    return dependency
