"""
Ticket issuance with quota enforcement, plus ticket read views.

CONCURRENCY STRATEGY: Conditional increment in the issuing transaction
======================================================================

Problem:
  A seller one ticket short of their quota submits two issuances at once.
  Both read tickets_sold = limit - 1, both insert a ticket, both increment.
  Result: tickets_sold = limit + 1.

Solution:
  The counter increment is a compare-and-swap executed in the same transaction
  as the ticket insert:

  1. UPDATE users SET tickets_sold = tickets_sold + 1
     WHERE id = :seller AND approved AND NOT suspended AND tickets_sold < ticket_limit
  2. If rows_affected == 0 -> roll back, re-read the seller to report why
  3. UPDATE events SET active = true WHERE id = :event AND active
     If rows_affected == 0 -> the event was deactivated meanwhile; roll back
  4. INSERT the ticket; commit all together

  The row lock taken by step 1 serializes concurrent issuances by the same
  seller, step 3 holds off a deactivation until the ticket commits, and the
  CHECK (tickets_sold <= ticket_limit) constraint is the final safety net.

Ticket codes:
  Codes are random enough that collisions are not expected, but the unique
  index is the authority. A collision rolls back the whole unit (counter
  included) and the attempt is retried with a fresh code, up to
  MAX_CODE_ATTEMPTS times.
"""

import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.config import get_settings
from partypass.core.exceptions import (
    Forbidden,
    InternalError,
    NotFound,
    PreconditionFailed,
    QuotaExceeded,
)
from partypass.core.logging import get_logger
from partypass.core.metrics import issuance_latency, record_issuance
from partypass.models.event import Event
from partypass.models.ticket import STATUS_UNUSED, Ticket
from partypass.models.user import ROLE_SELLER, User
from partypass.schemas.event import EventSnapshot
from partypass.schemas.ticket import TicketCreate, TicketIssued, TicketResponse
from partypass.services.notification_service import NotificationDispatcher
from partypass.services.qr_service import decode_qr_data_url, make_ticket_code, render_qr_data_url

logger = get_logger(__name__)
settings = get_settings()

MAX_CODE_ATTEMPTS = 3


def _check_seller_can_issue(seller: Optional[User]) -> User:
    if not seller or not seller.is_seller:
        raise NotFound("Seller not found")
    if seller.suspended:
        raise Forbidden("Seller account suspended")
    if not seller.approved:
        raise Forbidden("Seller not approved")
    if seller.tickets_sold >= seller.ticket_limit:
        raise QuotaExceeded("Ticket limit reached")
    return seller


async def _load_active_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    if not event.active:
        raise PreconditionFailed("Event is inactive")
    return event


async def _claim_quota(db: AsyncSession, seller_id: int) -> bool:
    result = await db.execute(
        update(User)
        .where(
            User.id == seller_id,
            User.role == ROLE_SELLER,
            User.approved == True,  # noqa: E712
            User.suspended == False,  # noqa: E712
            User.tickets_sold < User.ticket_limit,
        )
        .values(tickets_sold=User.tickets_sold + 1)
    )
    return result.rowcount == 1


async def _hold_event_gate(db: AsyncSession, event_id: int) -> bool:
    # Same-value write: locks the event row until commit, so a concurrent
    # deactivation either lands first (no match) or waits for this issuance
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.active == True)  # noqa: E712
        .values(active=True)
    )
    return result.rowcount == 1


async def issue_ticket(
    db: AsyncSession,
    seller_id: int,
    ticket_data: TicketCreate,
    notifier: NotificationDispatcher,
) -> TicketIssued:
    """
    Issue a ticket for an active event against the seller's quota.
    The ticket insert and the counter increment commit together; the customer
    notification is sent afterwards and cannot undo them.
    """
    started = time.perf_counter()

    try:
        _check_seller_can_issue(await db.get(User, seller_id, populate_existing=True))
        event = await _load_active_event(db, ticket_data.event_id)
    except QuotaExceeded:
        record_issuance("quota_exceeded")
        logger.warning("issuance_rejected", reason="quota_exceeded", seller_id=seller_id)
        raise
    except (NotFound, Forbidden, PreconditionFailed) as e:
        record_issuance("rejected")
        logger.warning("issuance_rejected", reason=e.detail, seller_id=seller_id, event_id=ticket_data.event_id)
        raise

    # Captured up front: a rollback expires ORM instances
    snapshot = EventSnapshot(id=event.id, name=event.name, date=event.date, time=event.time, venue=event.venue)

    ticket: Optional[Ticket] = None
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        if not await _claim_quota(db, seller_id):
            await db.rollback()
            # Re-read to report what changed since the pre-check
            seller = await db.get(User, seller_id, populate_existing=True)
            try:
                _check_seller_can_issue(seller)
            except QuotaExceeded:
                record_issuance("quota_exceeded")
                logger.warning("issuance_rejected", reason="quota_race", seller_id=seller_id)
                raise
            except (NotFound, Forbidden):
                record_issuance("rejected")
                raise
            # Nothing visibly wrong; another writer must have held the row
            raise QuotaExceeded("Ticket limit reached")

        if not await _hold_event_gate(db, snapshot.id):
            await db.rollback()
            record_issuance("rejected")
            logger.warning("issuance_rejected", reason="event_deactivated", seller_id=seller_id, event_id=snapshot.id)
            raise PreconditionFailed("Event is inactive")

        ticket_code = make_ticket_code(settings.TICKET_CODE_PREFIX)
        candidate = Ticket(
            event_id=snapshot.id,
            event_name=snapshot.name,
            event_date=snapshot.date,
            event_time=snapshot.time,
            event_venue=snapshot.venue,
            seller_id=seller_id,
            customer_name=ticket_data.customer_name,
            customer_whatsapp=ticket_data.customer_whatsapp,
            ticket_code=ticket_code,
            qr_code_data=render_qr_data_url(ticket_code),
            status=STATUS_UNUSED,
        )
        db.add(candidate)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            taken = await db.scalar(select(Ticket.id).where(Ticket.ticket_code == ticket_code))
            if taken is None:
                raise
            record_issuance("code_collision")
            logger.warning("ticket_code_collision", ticket_code=ticket_code, attempt=attempt)
            continue

        await db.commit()
        ticket = candidate
        break

    if ticket is None:
        raise InternalError("Could not allocate a unique ticket code")

    record_issuance("issued")
    issuance_latency.observe(time.perf_counter() - started)
    logger.info(
        "ticket_issued",
        ticket_id=ticket.id,
        ticket_code=ticket.ticket_code,
        seller_id=seller_id,
        event_id=snapshot.id,
    )

    notifications = await notifier.notify_ticket_issued(ticket, snapshot)

    return TicketIssued(
        ticket_id=ticket.id,
        ticket_code=ticket.ticket_code,
        qr=ticket.qr_code_data,
        event=snapshot,
        customer_name=ticket.customer_name,
        customer_whatsapp=ticket.customer_whatsapp,
        notifications=notifications,
    )


def _hydrated_query():
    """Tickets joined with the issuing seller's display name."""
    return (
        select(Ticket, User.name.label("seller_name"))
        .outerjoin(User, Ticket.seller_id == User.id)
        .execution_options(populate_existing=True)
    )


def _to_response(ticket: Ticket, seller_name: Optional[str]) -> TicketResponse:
    response = TicketResponse.model_validate(ticket)
    response.seller_name = seller_name
    return response


async def get_ticket_by_code(db: AsyncSession, ticket_code: str) -> TicketResponse:
    result = await db.execute(_hydrated_query().where(Ticket.ticket_code == ticket_code))
    row = result.first()
    if not row:
        raise NotFound("Ticket not found")
    return _to_response(*row)


async def list_tickets(db: AsyncSession) -> list[TicketResponse]:
    result = await db.execute(_hydrated_query().order_by(Ticket.id.desc()))
    return [_to_response(*row) for row in result.all()]


async def list_seller_tickets(db: AsyncSession, seller_id: int) -> list[TicketResponse]:
    result = await db.execute(
        _hydrated_query().where(Ticket.seller_id == seller_id).order_by(Ticket.id.desc())
    )
    return [_to_response(*row) for row in result.all()]


async def get_ticket_qr_png(db: AsyncSession, ticket_code: str) -> bytes:
    qr_code_data = await db.scalar(select(Ticket.qr_code_data).where(Ticket.ticket_code == ticket_code))
    if qr_code_data is None:
        raise NotFound("Ticket not found")
    return decode_qr_data_url(qr_code_data)
