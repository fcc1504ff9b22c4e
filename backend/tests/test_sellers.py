"""
Tests for seller management: approval with notifications, suspension, quota
edits, cascading deletion and per-seller views.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import SELLER_PASSWORD, headers_for, issue
from partypass.models.scan_log import ScanLog
from partypass.models.ticket import Ticket
from partypass.models.user import User


@pytest.mark.asyncio
async def test_list_sellers(client: AsyncClient, admin_headers, seller, pending_seller):
    response = await client.get("/api/sellers", headers=admin_headers)
    assert response.status_code == 200
    emails = [s["email"] for s in response.json()]
    assert emails == ["pat@partypass.io", "sam@partypass.io"]
    assert "admin@partypass.io" not in emails


@pytest.mark.asyncio
async def test_list_sellers_requires_admin(client: AsyncClient, seller_headers):
    response = await client.get("/api/sellers", headers=seller_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_approve_seller_notifies(client: AsyncClient, admin_headers, pending_seller, email_channel, whatsapp_channel):
    """Approval succeeds and reports one outcome per channel."""
    response = await client.patch(f"/api/sellers/{pending_seller.id}/approve", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Seller approved"
    assert data["notifications"] == {"email": "sent", "whatsapp": "sent"}

    assert [m.recipient for m in email_channel.messages] == ["pat@partypass.io"]
    assert [m.recipient for m in whatsapp_channel.messages] == ["+15550002222"]
    assert "approved" in email_channel.messages[0].body

    login = await client.post("/api/login", json={"email": "pat@partypass.io", "password": SELLER_PASSWORD})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_approve_seller_notification_failure_is_not_fatal(
    client: AsyncClient, admin_headers, pending_seller, email_channel, session_factory
):
    async def broken_send(message):
        raise ConnectionError("smtp unreachable")

    email_channel.send = broken_send

    response = await client.patch(f"/api/sellers/{pending_seller.id}/approve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["notifications"] == {"email": "failed:smtp unreachable", "whatsapp": "sent"}

    async with session_factory() as db:
        user = await db.get(User, pending_seller.id)
    assert user.approved is True


@pytest.mark.asyncio
async def test_approve_seller_without_whatsapp(client: AsyncClient, admin_headers, suspended_seller):
    response = await client.patch(f"/api/sellers/{suspended_seller.id}/approve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["notifications"]["whatsapp"] == "missing_contact"


@pytest.mark.asyncio
async def test_approve_unknown_seller(client: AsyncClient, admin, admin_headers):
    response = await client.patch("/api/sellers/99999/approve", headers=admin_headers)
    assert response.status_code == 404

    # Admin accounts are not sellers
    self_approve = await client.patch(f"/api/sellers/{admin.id}/approve", headers=admin_headers)
    assert self_approve.status_code == 404


@pytest.mark.asyncio
async def test_suspend_blocks_login_and_unsuspend_restores(client: AsyncClient, admin_headers, seller):
    suspended = await client.patch(f"/api/sellers/{seller.id}/suspend", headers=admin_headers)
    assert suspended.status_code == 200
    assert suspended.json() == {"message": "Seller suspended"}

    blocked = await client.post("/api/login", json={"email": "sam@partypass.io", "password": SELLER_PASSWORD})
    assert blocked.status_code == 403

    restored = await client.patch(f"/api/sellers/{seller.id}/unsuspend", headers=admin_headers)
    assert restored.status_code == 200

    login = await client.post("/api/login", json={"email": "sam@partypass.io", "password": SELLER_PASSWORD})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_set_ticket_limit(client: AsyncClient, admin_headers, seller):
    response = await client.patch(
        f"/api/sellers/{seller.id}/limit", json={"ticket_limit": 12}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["ticket_limit"] == 12


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_limit", [-1, 2.5, "3", True, None])
async def test_set_ticket_limit_rejects_invalid_values(client: AsyncClient, admin_headers, seller, bad_limit):
    response = await client.patch(
        f"/api/sellers/{seller.id}/limit", json={"ticket_limit": bad_limit}, headers=admin_headers
    )
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_set_ticket_limit_below_sold_rejected(client: AsyncClient, admin_headers, seller, event, session_factory):
    seller_headers = headers_for(seller)
    for _ in range(3):
        assert (await issue(client, seller_headers, event.id)).status_code == 201

    response = await client.patch(
        f"/api/sellers/{seller.id}/limit", json={"ticket_limit": 2}, headers=admin_headers
    )
    assert response.status_code == 400
    assert "(3)" in response.json()["error"]

    # Equal to sold is allowed
    exact = await client.patch(
        f"/api/sellers/{seller.id}/limit", json={"ticket_limit": 3}, headers=admin_headers
    )
    assert exact.status_code == 200
    assert exact.json()["ticket_limit"] == 3

    async with session_factory() as db:
        user = await db.get(User, seller.id)
    assert (user.ticket_limit, user.tickets_sold) == (3, 3)


@pytest.mark.asyncio
async def test_delete_unsuspended_seller_rejected(client: AsyncClient, admin_headers, seller):
    response = await client.delete(f"/api/sellers/{seller.id}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Suspend the seller before deleting."}


@pytest.mark.asyncio
async def test_delete_seller_cascades(client: AsyncClient, admin_headers, seller, event, session_factory):
    """Deleting a suspended seller removes their tickets and those tickets' scan logs."""
    seller_headers = headers_for(seller)
    issued = await issue(client, seller_headers, event.id)
    await client.post("/api/scan", json={"ticket_code": issued.json()["ticket_code"]}, headers=admin_headers)

    await client.patch(f"/api/sellers/{seller.id}/suspend", headers=admin_headers)
    response = await client.delete(f"/api/sellers/{seller.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Seller deleted"}

    async with session_factory() as db:
        assert await db.get(User, seller.id) is None
        assert await db.scalar(select(func.count(Ticket.id))) == 0
        assert await db.scalar(select(func.count(ScanLog.id))) == 0


@pytest.mark.asyncio
async def test_seller_summary(client: AsyncClient, admin_headers, seller, event):
    seller_headers = headers_for(seller)
    codes = []
    for _ in range(3):
        codes.append((await issue(client, seller_headers, event.id)).json()["ticket_code"])
    await client.post("/api/scan", json={"ticket_code": codes[0]}, headers=admin_headers)

    response = await client.get(f"/api/sellers/{seller.id}/summary", headers=seller_headers)
    assert response.status_code == 200
    assert response.json() == {"total": 3, "used": 1, "remaining": 2, "limit": 5, "sold": 3}

    as_admin = await client.get(f"/api/sellers/{seller.id}/summary", headers=admin_headers)
    assert as_admin.status_code == 200


@pytest.mark.asyncio
async def test_seller_cannot_view_another_seller(client: AsyncClient, seller, pending_seller):
    response = await client.get(f"/api/sellers/{pending_seller.id}/summary", headers=headers_for(seller))
    assert response.status_code == 403

    tickets = await client.get(f"/api/sellers/{pending_seller.id}/tickets", headers=headers_for(seller))
    assert tickets.status_code == 403


@pytest.mark.asyncio
async def test_seller_tickets(client: AsyncClient, seller, event):
    seller_headers = headers_for(seller)
    await issue(client, seller_headers, event.id, customer="First")
    await issue(client, seller_headers, event.id, customer="Second")

    response = await client.get(f"/api/sellers/{seller.id}/tickets", headers=seller_headers)
    assert response.status_code == 200
    tickets = response.json()
    assert [t["customer_name"] for t in tickets] == ["Second", "First"]
    assert all(t["seller_name"] == "Sam Seller" for t in tickets)
