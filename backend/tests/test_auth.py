"""
Tests for registration, login, credential upgrade and profiles.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import ADMIN_PASSWORD, SELLER_PASSWORD, headers_for
from partypass.models.user import ROLE_ADMIN, ROLE_SELLER, User
from partypass.services.auth_service import seed_admin


@pytest.mark.asyncio
async def test_register_seller(client: AsyncClient, session_factory):
    """Registration creates an unapproved seller with the default quota."""
    response = await client.post("/api/register", json={
        "name": "New Seller",
        "email": "New@Partypass.io",
        "password": "secret123",
        "whatsapp": "+15551234567",
    })
    assert response.status_code == 201
    data = response.json()
    assert "id" in data
    assert "password" not in data

    async with session_factory() as db:
        user = await db.get(User, data["id"])
    assert user.email == "new@partypass.io"
    assert user.role == ROLE_SELLER
    assert user.approved is False
    assert user.ticket_limit == 100
    assert user.tickets_sold == 0
    assert user.credential_format == "hashed"
    assert user.password != "secret123"


@pytest.mark.asyncio
async def test_register_accepts_seller_whatsapp_alias(client: AsyncClient, session_factory):
    response = await client.post("/api/register", json={
        "name": "Alias Seller",
        "email": "alias@partypass.io",
        "password": "secret123",
        "seller_whatsapp": "+15557654321",
    })
    assert response.status_code == 201

    async with session_factory() as db:
        user = await db.get(User, response.json()["id"])
    assert user.whatsapp == "+15557654321"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, seller):
    """Duplicate email (any case) returns 409."""
    response = await client.post("/api/register", json={
        "name": "Copycat",
        "email": "SAM@partypass.io",
        "password": "secret123",
        "whatsapp": "+15550000000",
    })
    assert response.status_code == 409
    assert response.json() == {"error": "Email already in use"}


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under the minimum length returns 400."""
    response = await client.post("/api/register", json={
        "name": "Weak",
        "email": "weak@partypass.io",
        "password": "abc",
        "whatsapp": "+15550000000",
    })
    assert response.status_code == 400
    assert "at least 6" in response.json()["error"]


@pytest.mark.asyncio
async def test_register_missing_field(client: AsyncClient):
    """Body validation failures are reported as 400 with an error message."""
    response = await client.post("/api/register", json={"email": "nobody@partypass.io"})
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_login_approved_seller(client: AsyncClient, seller):
    response = await client.post("/api/login", json={
        "email": "sam@partypass.io",
        "password": SELLER_PASSWORD,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["id"] == seller.id
    assert data["user"]["role"] == ROLE_SELLER
    assert "password" not in data["user"]


@pytest.mark.asyncio
async def test_login_token_grants_access(client: AsyncClient, seller):
    login = await client.post("/api/login", json={"email": "sam@partypass.io", "password": SELLER_PASSWORD})
    token = login.json()["token"]

    response = await client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["email"] == "sam@partypass.io"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, seller):
    response = await client.post("/api/login", json={
        "email": "sam@partypass.io",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    response = await client.post("/api/login", json={
        "email": "ghost@partypass.io",
        "password": "whatever1",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unapproved_seller(client: AsyncClient, pending_seller):
    response = await client.post("/api/login", json={
        "email": "pat@partypass.io",
        "password": SELLER_PASSWORD,
    })
    assert response.status_code == 403
    assert response.json() == {"error": "Seller not approved"}


@pytest.mark.asyncio
async def test_login_suspended_seller(client: AsyncClient, suspended_seller):
    response = await client.post("/api/login", json={
        "email": "sid@partypass.io",
        "password": SELLER_PASSWORD,
    })
    assert response.status_code == 403
    assert response.json() == {"error": "Seller account suspended"}


@pytest.mark.asyncio
async def test_login_upgrades_legacy_credential(client: AsyncClient, db_session, session_factory):
    """A plaintext credential is accepted once and rewritten as a bcrypt hash."""
    legacy = User(
        name="Old Timer",
        email="old@partypass.io",
        password="plainpass1",
        credential_format="legacy",
        role=ROLE_SELLER,
        approved=True,
    )
    db_session.add(legacy)
    await db_session.commit()

    response = await client.post("/api/login", json={"email": "old@partypass.io", "password": "plainpass1"})
    assert response.status_code == 200

    async with session_factory() as db:
        user = await db.get(User, legacy.id)
    assert user.credential_format == "hashed"
    assert user.password != "plainpass1"
    assert user.password.startswith("$2")

    # Still works after the upgrade
    again = await client.post("/api/login", json={"email": "old@partypass.io", "password": "plainpass1"})
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_legacy_credential_wrong_password_is_not_upgraded(client: AsyncClient, db_session, session_factory):
    legacy = User(
        name="Old Timer",
        email="old@partypass.io",
        password="plainpass1",
        credential_format="legacy",
        role=ROLE_SELLER,
        approved=True,
    )
    db_session.add(legacy)
    await db_session.commit()

    response = await client.post("/api/login", json={"email": "old@partypass.io", "password": "nottheone"})
    assert response.status_code == 401

    async with session_factory() as db:
        user = await db.get(User, legacy.id)
    assert user.credential_format == "legacy"


@pytest.mark.asyncio
async def test_admin_login(client: AsyncClient, admin):
    response = await client.post("/api/login", json={"email": "admin@partypass.io", "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == ROLE_ADMIN


@pytest.mark.asyncio
async def test_seed_admin_is_idempotent(db_session):
    first = await seed_admin(db_session)
    second = await seed_admin(db_session)

    assert first is not None
    assert first.role == ROLE_ADMIN
    assert second is None
    count = await db_session.scalar(select(func.count(User.id)).where(User.role == ROLE_ADMIN))
    assert count == 1


@pytest.mark.asyncio
async def test_profile_requires_authentication(client: AsyncClient):
    response = await client.get("/api/profile")
    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization"}


@pytest.mark.asyncio
async def test_profile_rejects_garbage_token(client: AsyncClient):
    response = await client.get("/api/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


@pytest.mark.asyncio
async def test_update_profile(client: AsyncClient, seller):
    headers = headers_for(seller)
    response = await client.put("/api/profile", json={
        "name": "Samantha Seller",
        "phone": "+15550003333",
        "seller_whatsapp": "+15550004444",
        "avatar_url": "https://cdn.party.test/sam.png",
    }, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Samantha Seller"
    assert data["phone"] == "+15550003333"
    assert data["whatsapp"] == "+15550004444"
    assert data["avatar_url"] == "https://cdn.party.test/sam.png"

    # Empty string clears an optional field; omitted fields are untouched
    cleared = await client.put("/api/profile", json={"phone": ""}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["phone"] is None
    assert cleared.json()["name"] == "Samantha Seller"
