"""
Ticket endpoints: seller issuance, admin listing and the public code view.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.api.deps import get_notifier, rate_limit
from partypass.core.security import Principal, require_admin, require_seller
from partypass.db.session import get_db
from partypass.schemas.ticket import TicketCreate, TicketIssued, TicketResponse
from partypass.services.notification_service import NotificationDispatcher
from partypass.services.ticket_service import (
    get_ticket_by_code,
    get_ticket_qr_png,
    issue_ticket,
    list_tickets,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("", response_model=TicketIssued, status_code=status.HTTP_201_CREATED)
async def issue_ticket_endpoint(
    ticket_data: TicketCreate,
    seller: Principal = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Issue a ticket against the caller's quota.

    The quota counter is incremented by a conditional UPDATE in the same
    transaction as the ticket insert, so concurrent issuances by one seller
    can never exceed ticket_limit.
    """
    return await issue_ticket(db, seller.id, ticket_data, notifier)


@router.get("", response_model=list[TicketResponse])
async def list_tickets_endpoint(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_tickets(db)


@router.get(
    "/{ticket_code}",
    response_model=TicketResponse,
    dependencies=[Depends(rate_limit("ticket_view"))],
)
async def view_ticket_endpoint(ticket_code: str, db: AsyncSession = Depends(get_db)):
    """Public view of a ticket by its code."""
    return await get_ticket_by_code(db, ticket_code)


@router.get("/{ticket_code}/qr.png", response_class=Response)
async def ticket_qr_endpoint(ticket_code: str, db: AsyncSession = Depends(get_db)):
    png = await get_ticket_qr_png(db, ticket_code)
    return Response(content=png, media_type="image/png")
