"""
Ticket redemption at the door.

Redemption is a single-use transition (unused -> used) guarded by a
conditional UPDATE:

    UPDATE tickets SET status = 'used', scanned_at = :now
    WHERE id = :id AND status = 'unused'

Of any number of concurrent scans of the same code exactly one sees
rows_affected == 1 and writes the scan log entry; the rest get 409.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from partypass.core.exceptions import Conflict, NotFound, ValidationFailed
from partypass.core.logging import get_logger
from partypass.core.metrics import record_redemption
from partypass.core.security import Principal
from partypass.db.base import utcnow
from partypass.models.scan_log import ScanLog
from partypass.models.ticket import STATUS_UNUSED, STATUS_USED, Ticket
from partypass.models.user import User
from partypass.schemas.scan import ScanLogResponse, ScanResponse
from partypass.services.audit_service import record_audit
from partypass.services.ticket_service import get_ticket_by_code

logger = get_logger(__name__)


async def redeem_ticket(db: AsyncSession, ticket_code: str, scanner: Principal) -> ScanResponse:
    """
    Mark a ticket used and append a scan log entry, atomically.
    Raises 400 for a blank code, 404 for an unknown code, 409 if already used.
    """
    ticket_code = (ticket_code or "").strip()
    if not ticket_code:
        record_redemption("invalid")
        raise ValidationFailed("ticketCode is required")

    ticket = await db.scalar(select(Ticket).where(Ticket.ticket_code == ticket_code))
    if not ticket:
        record_redemption("not_found")
        logger.warning("scan_rejected", reason="unknown_code", ticket_code=ticket_code, scanner_id=scanner.id)
        raise NotFound("Invalid ticket")
    ticket_id = ticket.id

    if ticket.status == STATUS_USED:
        record_redemption("already_used")
        logger.warning("scan_rejected", reason="already_used", ticket_id=ticket_id, scanner_id=scanner.id)
        raise Conflict("Already used")

    now = utcnow()
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status == STATUS_UNUSED)
        .values(status=STATUS_USED, scanned_at=now)
    )
    if result.rowcount == 0:
        # Another scanner won the race
        await db.rollback()
        record_redemption("already_used")
        logger.warning("scan_rejected", reason="redeem_race", ticket_id=ticket_id, scanner_id=scanner.id)
        raise Conflict("Already used")

    db.add(ScanLog(ticket_id=ticket_id, ticket_code=ticket_code, scanner_id=scanner.id, scanned_at=now))
    record_audit(db, scanner.id, "ticket.redeem", "ticket", ticket_id, ticket_code=ticket_code)
    await db.commit()

    record_redemption("redeemed")
    logger.info("ticket_redeemed", ticket_id=ticket_id, ticket_code=ticket_code, scanner_id=scanner.id)
    return ScanResponse(ticket=await get_ticket_by_code(db, ticket_code))


async def recent_scan_logs(db: AsyncSession, limit: int = 50) -> list[ScanLogResponse]:
    """Newest redemptions first, joined with ticket, seller and scanner details."""
    scanner = aliased(User)
    seller = aliased(User)
    result = await db.execute(
        select(
            ScanLog,
            scanner.name,
            Ticket.customer_name,
            Ticket.customer_whatsapp,
            Ticket.issued_at,
            Ticket.event_name,
            seller.name,
        )
        .outerjoin(scanner, ScanLog.scanner_id == scanner.id)
        .outerjoin(Ticket, ScanLog.ticket_id == Ticket.id)
        .outerjoin(seller, Ticket.seller_id == seller.id)
        .order_by(ScanLog.scanned_at.desc(), ScanLog.id.desc())
        .limit(limit)
    )
    return [
        ScanLogResponse(
            id=log.id,
            ticket_id=log.ticket_id,
            ticket_code=log.ticket_code,
            scanned_at=log.scanned_at,
            scanner_id=log.scanner_id,
            scanner_name=scanner_name,
            customer_name=customer_name,
            customer_whatsapp=customer_whatsapp,
            issued_at=issued_at,
            event_name=event_name,
            seller_name=seller_name,
        )
        for log, scanner_name, customer_name, customer_whatsapp, issued_at, event_name, seller_name in result.all()
    ]
