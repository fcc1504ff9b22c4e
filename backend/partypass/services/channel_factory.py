"""
Notification channel factory.
Builds the dispatcher from settings; a channel without configuration becomes a
DisabledChannel here rather than a None checked at send time.
"""

from partypass.core.config import Settings
from partypass.core.logging import get_logger
from partypass.services.interfaces.disabled_channel import DisabledChannel
from partypass.services.interfaces.notification_channel import NotificationChannel
from partypass.services.notification_service import EmailChannel, NotificationDispatcher, WhatsAppChannel

logger = get_logger(__name__)


def build_email_channel(settings: Settings) -> NotificationChannel:
    if not settings.smtp_configured:
        return DisabledChannel("email")
    return EmailChannel(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASS,
        sender=settings.SMTP_FROM,
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    )


def build_whatsapp_channel(settings: Settings) -> NotificationChannel:
    if not settings.twilio_configured:
        return DisabledChannel("whatsapp")
    return WhatsAppChannel(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        sender=settings.TWILIO_WHATSAPP_FROM,
        api_url=settings.TWILIO_API_URL,
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    )


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    email = build_email_channel(settings)
    whatsapp = build_whatsapp_channel(settings)
    logger.info(
        "notification_channels",
        email=email.__class__.__name__,
        whatsapp=whatsapp.__class__.__name__,
    )
    return NotificationDispatcher(
        email=email,
        whatsapp=whatsapp,
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        public_base_url=settings.PUBLIC_BASE_URL,
    )
