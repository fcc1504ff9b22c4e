"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own SQLite file, so concurrent requests in race tests use
independent connections and transactions just like production sessions do.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DB_AUTO_CREATE", "false")

from datetime import date, time  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from partypass.core.security import create_access_token, hash_password  # noqa: E402
from partypass.db.base import Base  # noqa: E402
from partypass.db.session import get_db  # noqa: E402
from partypass.main import app  # noqa: E402
from partypass.models.event import Event  # noqa: E402
from partypass.models.user import ROLE_ADMIN, ROLE_SELLER, User  # noqa: E402
from partypass.services.interfaces.notification_channel import Message, NotificationChannel, Outcome  # noqa: E402
from partypass.services.notification_service import NotificationDispatcher  # noqa: E402
from partypass.services.rate_limit_service import InMemoryRateLimiter  # noqa: E402

SELLER_PASSWORD = "sellerpass123"
ADMIN_PASSWORD = "adminpass123"


class RecordingChannel(NotificationChannel):
    """Captures messages instead of delivering them."""

    def __init__(self, name: str, outcome: Optional[Outcome] = None):
        self.name = name
        self.outcome = outcome or Outcome.sent()
        self.messages: list[Message] = []

    async def send(self, message: Message) -> Outcome:
        self.messages.append(message)
        return self.outcome


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema in a throwaway SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'partypass_test.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def email_channel() -> RecordingChannel:
    return RecordingChannel("email")


@pytest_asyncio.fixture(scope="function")
async def whatsapp_channel() -> RecordingChannel:
    return RecordingChannel("whatsapp")


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory,
    email_channel: RecordingChannel,
    whatsapp_channel: RecordingChannel,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a session per request, recording notifiers and a generous rate limit."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    saved_limiter = app.state.rate_limiter
    saved_notifier = app.state.notifier
    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = InMemoryRateLimiter(limit=1000, window_seconds=60)
    app.state.notifier = NotificationDispatcher(
        email=email_channel,
        whatsapp=whatsapp_channel,
        timeout=1.0,
        public_base_url="https://party.test",
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.rate_limiter = saved_limiter
    app.state.notifier = saved_notifier


async def _add_user(db: AsyncSession, **fields) -> User:
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session,
        name="Admin",
        email="admin@partypass.io",
        password=hash_password(ADMIN_PASSWORD),
        credential_format="hashed",
        role=ROLE_ADMIN,
        approved=True,
    )


@pytest_asyncio.fixture
async def seller(db_session: AsyncSession) -> User:
    """Approved seller with a quota of 5."""
    return await _add_user(
        db_session,
        name="Sam Seller",
        email="sam@partypass.io",
        password=hash_password(SELLER_PASSWORD),
        credential_format="hashed",
        role=ROLE_SELLER,
        ticket_limit=5,
        tickets_sold=0,
        approved=True,
        whatsapp="+15550001111",
    )


@pytest_asyncio.fixture
async def pending_seller(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session,
        name="Pat Pending",
        email="pat@partypass.io",
        password=hash_password(SELLER_PASSWORD),
        credential_format="hashed",
        role=ROLE_SELLER,
        approved=False,
        whatsapp="+15550002222",
    )


@pytest_asyncio.fixture
async def suspended_seller(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session,
        name="Sid Suspended",
        email="sid@partypass.io",
        password=hash_password(SELLER_PASSWORD),
        credential_format="hashed",
        role=ROLE_SELLER,
        approved=True,
        suspended=True,
    )


@pytest_asyncio.fixture
async def event(db_session: AsyncSession) -> Event:
    event = Event(name="Rooftop Party", date=date(2026, 12, 31), time=time(22, 0), venue="Skyline Terrace")
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def inactive_event(db_session: AsyncSession) -> Event:
    event = Event(name="Closed Gala", date=date(2026, 11, 1), time=time(19, 30), venue="Old Hall", active=False)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


def token_for(user: User) -> str:
    return create_access_token(data={"id": user.id, "role": user.role, "name": user.name})


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def seller_headers(seller: User) -> dict:
    return headers_for(seller)


async def issue(client: AsyncClient, headers: dict, event_id: int, customer: str = "Casey Customer"):
    return await client.post(
        "/api/tickets",
        json={"event_id": event_id, "customer_name": customer, "customer_whatsapp": "+15559990000"},
        headers=headers,
    )
