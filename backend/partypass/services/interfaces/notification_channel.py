"""
Notification channel capability.
Each delivery mechanism (email, WhatsApp, ...) implements send() and reports an
Outcome instead of raising, so callers can surface the result without letting
delivery failures leak into the operation that triggered them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

SENT = "sent"
FAILED = "failed"
NOT_CONFIGURED = "not_configured"
MISSING_CONTACT = "missing_contact"
SKIPPED = "skipped"


@dataclass(frozen=True)
class Outcome:
    status: str
    reason: Optional[str] = None

    def __str__(self) -> str:
        if self.status == FAILED and self.reason:
            return f"{FAILED}:{self.reason}"
        return self.status

    @classmethod
    def sent(cls) -> "Outcome":
        return cls(SENT)

    @classmethod
    def failed(cls, reason: str) -> "Outcome":
        return cls(FAILED, reason)

    @classmethod
    def not_configured(cls) -> "Outcome":
        return cls(NOT_CONFIGURED)

    @classmethod
    def missing_contact(cls) -> "Outcome":
        return cls(MISSING_CONTACT)

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(SKIPPED)


@dataclass(frozen=True)
class Message:
    recipient: Optional[str]
    subject: str
    body: str
    media_url: Optional[str] = None


class NotificationChannel(ABC):
    """
    Interface for delivery channels.

    Implementations:
    - EmailChannel: SMTP delivery
    - WhatsAppChannel: Twilio WhatsApp API
    - DisabledChannel: channel without configuration, never sends
    """

    name: str = "channel"

    @abstractmethod
    async def send(self, message: Message) -> Outcome:
        """
        Deliver a message.

        Args:
            message: Message with a non-empty recipient

        Returns:
            Outcome of the attempt. Implementations may still raise on
            transport errors; the dispatcher converts those to failed outcomes.
        """
        pass
