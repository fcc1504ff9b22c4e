"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notification_channel import Message, NotificationChannel, Outcome
from .disabled_channel import DisabledChannel
from .rate_limiter import RateLimitDecision, RateLimiter

__all__ = [
    'Message', 'NotificationChannel', 'Outcome', 'DisabledChannel',
    'RateLimitDecision', 'RateLimiter',
]
