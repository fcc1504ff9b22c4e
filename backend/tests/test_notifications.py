"""
Tests for notification channels and the dispatcher's outcome reporting.
"""

import asyncio
from datetime import date, time
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import RecordingChannel
from partypass.core.config import Settings
from partypass.models.ticket import Ticket
from partypass.models.user import User
from partypass.schemas.event import EventSnapshot
from partypass.services.channel_factory import build_dispatcher
from partypass.services.interfaces import DisabledChannel, Message, Outcome
from partypass.services.notification_service import (
    EmailChannel,
    NotificationDispatcher,
    WhatsAppChannel,
    normalize_whatsapp,
)

SNAPSHOT = EventSnapshot(id=1, name="Rooftop Party", date=date(2026, 12, 31), time=time(22, 0), venue="Skyline")


class ExplodingChannel(RecordingChannel):
    async def send(self, message: Message) -> Outcome:
        raise RuntimeError("provider exploded")


class SlowChannel(RecordingChannel):
    async def send(self, message: Message) -> Outcome:
        await asyncio.sleep(5)
        return Outcome.sent()


def _seller(**overrides) -> User:
    fields = {"name": "Sam", "email": "sam@partypass.io", "whatsapp": "+15550001111"}
    fields.update(overrides)
    return User(**fields)


def test_normalize_whatsapp():
    assert normalize_whatsapp("+15550001111") == "whatsapp:+15550001111"
    assert normalize_whatsapp("whatsapp:+15550001111") == "whatsapp:+15550001111"
    assert normalize_whatsapp("  ") is None
    assert normalize_whatsapp(None) is None


def test_outcome_rendering():
    assert str(Outcome.sent()) == "sent"
    assert str(Outcome.failed("timeout")) == "failed:timeout"
    assert str(Outcome.not_configured()) == "not_configured"


@pytest.mark.asyncio
async def test_notify_approval_all_sent():
    email, whatsapp = RecordingChannel("email"), RecordingChannel("whatsapp")
    dispatcher = NotificationDispatcher(email=email, whatsapp=whatsapp, timeout=1.0)

    outcomes = await dispatcher.notify_approval(_seller())

    assert outcomes == {"email": "sent", "whatsapp": "sent"}
    assert email.messages[0].subject == "PartyPass Seller Approved"
    assert whatsapp.messages[0].recipient == "+15550001111"


@pytest.mark.asyncio
async def test_disabled_channels_report_not_configured():
    dispatcher = NotificationDispatcher(email=DisabledChannel("email"), whatsapp=DisabledChannel("whatsapp"))

    outcomes = await dispatcher.notify_approval(_seller())

    assert outcomes == {"email": "not_configured", "whatsapp": "not_configured"}


@pytest.mark.asyncio
async def test_missing_contact_skips_send():
    whatsapp = RecordingChannel("whatsapp")
    dispatcher = NotificationDispatcher(email=RecordingChannel("email"), whatsapp=whatsapp)

    outcomes = await dispatcher.notify_approval(_seller(whatsapp=None))

    assert outcomes["whatsapp"] == "missing_contact"
    assert whatsapp.messages == []


@pytest.mark.asyncio
async def test_channel_exception_becomes_failed_outcome():
    dispatcher = NotificationDispatcher(email=ExplodingChannel("email"), whatsapp=RecordingChannel("whatsapp"))

    outcomes = await dispatcher.notify_approval(_seller())

    assert outcomes == {"email": "failed:provider exploded", "whatsapp": "sent"}


@pytest.mark.asyncio
async def test_slow_channel_times_out():
    dispatcher = NotificationDispatcher(
        email=RecordingChannel("email"),
        whatsapp=SlowChannel("whatsapp"),
        timeout=0.05,
    )

    outcomes = await dispatcher.notify_approval(_seller())

    assert outcomes["whatsapp"] == "failed:timeout"


@pytest.mark.asyncio
async def test_notify_ticket_issued_without_public_url():
    whatsapp = RecordingChannel("whatsapp")
    dispatcher = NotificationDispatcher(email=RecordingChannel("email"), whatsapp=whatsapp)
    ticket = Ticket(ticket_code="PP-abc-123456", customer_whatsapp="+15559990000")

    outcomes = await dispatcher.notify_ticket_issued(ticket, SNAPSHOT)

    assert outcomes == {"email": "skipped", "whatsapp": "sent"}
    message = whatsapp.messages[0]
    assert "PP-abc-123456" in message.body
    assert "2026-12-31 22:00" in message.body
    assert "View:" not in message.body
    assert message.media_url is None


def test_ticket_links():
    dispatcher = NotificationDispatcher(
        email=DisabledChannel("email"),
        whatsapp=DisabledChannel("whatsapp"),
        public_base_url="https://tickets.partypass.io/",
    )
    assert dispatcher.ticket_links("PP-x-000000") == (
        "https://tickets.partypass.io/ticket/view/PP-x-000000",
        "https://tickets.partypass.io/api/tickets/PP-x-000000/qr.png",
    )


@pytest.mark.asyncio
async def test_whatsapp_channel_posts_to_twilio():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["form"] = parse_qs(request.content.decode())
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(201, json={"sid": "SM123"})

    channel = WhatsAppChannel(
        account_sid="AC123",
        auth_token="secret",
        sender="+15550000000",
        api_url="https://twilio.test/2010-04-01/",
        transport=httpx.MockTransport(handler),
    )

    outcome = await channel.send(Message(
        recipient="+15559990000",
        subject="ignored",
        body="hello",
        media_url="https://party.test/api/tickets/PP-x/qr.png",
    ))

    assert outcome == Outcome.sent()
    assert captured["url"] == "https://twilio.test/2010-04-01/Accounts/AC123/Messages.json"
    assert captured["form"]["From"] == ["whatsapp:+15550000000"]
    assert captured["form"]["To"] == ["whatsapp:+15559990000"]
    assert captured["form"]["Body"] == ["hello"]
    assert captured["form"]["MediaUrl"] == ["https://party.test/api/tickets/PP-x/qr.png"]
    assert captured["auth"].startswith("Basic ")


@pytest.mark.asyncio
async def test_whatsapp_channel_reports_provider_error():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(400, json={"message": "Invalid 'To' number"})
    )
    channel = WhatsAppChannel(account_sid="AC123", auth_token="secret", sender="+1555", transport=transport)

    outcome = await channel.send(Message(recipient="+1", subject="", body="hi"))

    assert str(outcome) == "failed:Invalid 'To' number"


def test_factory_disables_unconfigured_channels():
    settings = Settings(_env_file=None, SMTP_HOST=None, TWILIO_ACCOUNT_SID=None)

    dispatcher = build_dispatcher(settings)

    assert isinstance(dispatcher.email, DisabledChannel)
    assert isinstance(dispatcher.whatsapp, DisabledChannel)


def test_factory_builds_configured_channels():
    settings = Settings(
        _env_file=None,
        SMTP_HOST="smtp.partypass.io",
        SMTP_PORT=587,
        SMTP_USER="mailer",
        SMTP_PASS="pw",
        SMTP_FROM="PartyPass <no-reply@partypass.io>",
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="secret",
        TWILIO_WHATSAPP_FROM="+15550000000",
        PUBLIC_BASE_URL="https://tickets.partypass.io",
    )

    dispatcher = build_dispatcher(settings)

    assert isinstance(dispatcher.email, EmailChannel)
    assert isinstance(dispatcher.whatsapp, WhatsAppChannel)
    assert dispatcher.whatsapp.sender == "whatsapp:+15550000000"
    assert dispatcher.public_base_url == "https://tickets.partypass.io"
