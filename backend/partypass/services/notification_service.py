"""
Notification delivery for seller approvals and issued tickets.

Delivery is fire-and-forget from the caller's point of view: every send is
bounded by a timeout, and any exception or timeout is converted to a
`failed:<reason>` outcome and logged. The dispatcher never raises, so an
approval or issuance that has already committed cannot be undone by a
delivery problem.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

import httpx

from partypass.core.logging import get_logger
from partypass.core.metrics import record_notification
from partypass.models.user import User
from partypass.models.ticket import Ticket
from partypass.schemas.event import EventSnapshot
from partypass.services.interfaces.notification_channel import FAILED, Message, NotificationChannel, Outcome

logger = get_logger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


def normalize_whatsapp(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    return value if value.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{value}"


class EmailChannel(NotificationChannel):
    name = "email"

    def __init__(self, host: str, port: int, username: str, password: str, sender: str, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def _send_blocking(self, message: Message) -> None:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = message.recipient
        email["Subject"] = message.subject
        email.set_content(message.body)

        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.login(self.username, self.password)
                smtp.send_message(email)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                smtp.login(self.username, self.password)
                smtp.send_message(email)

    async def send(self, message: Message) -> Outcome:
        # smtplib is blocking; keep it off the event loop
        await asyncio.to_thread(self._send_blocking, message)
        return Outcome.sent()


class WhatsAppChannel(NotificationChannel):
    """WhatsApp delivery through the Twilio Messages REST API."""

    name = "whatsapp"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        sender: str,
        api_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.sender = normalize_whatsapp(sender)
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(self, message: Message) -> Outcome:
        data = {
            "From": self.sender,
            "To": normalize_whatsapp(message.recipient),
            "Body": message.body,
        }
        if message.media_url:
            data["MediaUrl"] = message.media_url

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.api_url}/Accounts/{self.account_sid}/Messages.json",
                data=data,
                auth=(self.account_sid, self.auth_token),
            )
        if response.status_code >= 400:
            try:
                reason = response.json().get("message") or f"HTTP {response.status_code}"
            except ValueError:
                reason = f"HTTP {response.status_code}"
            return Outcome.failed(reason)
        return Outcome.sent()


class NotificationDispatcher:
    def __init__(
        self,
        email: NotificationChannel,
        whatsapp: NotificationChannel,
        timeout: float = 10.0,
        public_base_url: str = "",
    ):
        self.email = email
        self.whatsapp = whatsapp
        self.timeout = timeout
        self.public_base_url = public_base_url.rstrip("/")

    async def _deliver(self, channel: NotificationChannel, message: Message) -> str:
        if not message.recipient:
            outcome = Outcome.missing_contact()
        else:
            try:
                outcome = await asyncio.wait_for(channel.send(message), timeout=self.timeout)
            except asyncio.TimeoutError:
                outcome = Outcome.failed("timeout")
            except Exception as e:
                outcome = Outcome.failed(str(e) or e.__class__.__name__)

        if outcome.status == FAILED:
            logger.warning("notification_failed", channel=channel.name, reason=outcome.reason)
        else:
            logger.info("notification_outcome", channel=channel.name, outcome=outcome.status)
        record_notification(channel.name, outcome.status)
        return str(outcome)

    async def notify_approval(self, seller: User) -> dict[str, str]:
        body = (
            f"Hi {seller.name}, your PartyPass seller account is approved. "
            "You can now log in and generate tickets."
        )
        email = await self._deliver(
            self.email,
            Message(recipient=seller.email, subject="PartyPass Seller Approved", body=body),
        )
        whatsapp = await self._deliver(
            self.whatsapp,
            Message(recipient=seller.whatsapp, subject="PartyPass Seller Approved", body=body),
        )
        return {"email": email, "whatsapp": whatsapp}

    def ticket_links(self, ticket_code: str) -> tuple[Optional[str], Optional[str]]:
        """Public (view_url, qr_png_url) for a ticket, when a public base URL is configured."""
        if not self.public_base_url:
            return None, None
        return (
            f"{self.public_base_url}/ticket/view/{ticket_code}",
            f"{self.public_base_url}/api/tickets/{ticket_code}/qr.png",
        )

    async def notify_ticket_issued(self, ticket: Ticket, event: EventSnapshot) -> dict[str, str]:
        view_url, media_url = self.ticket_links(ticket.ticket_code)
        lines = [
            "PartyPass Ticket",
            f"Event: {event.name}",
            f"Date: {event.date.isoformat()} {event.time.strftime('%H:%M')}",
            f"Venue: {event.venue}",
            f"Ticket: {ticket.ticket_code}",
        ]
        if view_url:
            lines.append(f"View: {view_url}")

        whatsapp = await self._deliver(
            self.whatsapp,
            Message(
                recipient=ticket.customer_whatsapp,
                subject=f"{event.name} ticket",
                body="\n".join(lines),
                media_url=media_url,
            ),
        )
        # Customers are only reachable on WhatsApp
        record_notification(self.email.name, "skipped")
        return {"email": str(Outcome.skipped()), "whatsapp": whatsapp}
