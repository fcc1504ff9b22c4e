"""
Seller management: approval lifecycle, quota edits and cascading deletion.

Quota edits use a conditional UPDATE (`... WHERE tickets_sold <= :new_limit`)
so a limit can never be lowered beneath sales that committed between the read
and the write.
"""

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.exceptions import NotFound, PreconditionFailed, ValidationFailed
from partypass.core.logging import get_logger
from partypass.core.security import Principal
from partypass.models.scan_log import ScanLog
from partypass.models.ticket import STATUS_USED, Ticket
from partypass.models.user import ROLE_SELLER, User
from partypass.schemas.user import SellerSummary
from partypass.services.audit_service import record_audit
from partypass.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)


async def list_sellers(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User).where(User.role == ROLE_SELLER).order_by(User.id.desc())
    )
    return list(result.scalars().all())


async def get_seller(db: AsyncSession, seller_id: int, refresh: bool = False) -> User:
    seller = await db.get(User, seller_id, populate_existing=refresh)
    if not seller or not seller.is_seller:
        raise NotFound("Seller not found")
    return seller


async def approve_seller(
    db: AsyncSession,
    seller_id: int,
    actor: Principal,
    notifier: NotificationDispatcher,
) -> tuple[User, dict[str, str]]:
    """
    Approve a seller, then notify them.
    Notification outcomes are returned as-is; they never undo the approval.
    """
    seller = await get_seller(db, seller_id)
    seller.approved = True
    record_audit(db, actor.id, "seller.approve", "seller", seller.id, email=seller.email)
    await db.commit()
    await db.refresh(seller)
    logger.info("seller_approved", seller_id=seller.id, actor_id=actor.id)

    notifications = await notifier.notify_approval(seller)
    return seller, notifications


async def set_suspended(db: AsyncSession, seller_id: int, suspended: bool, actor: Principal) -> User:
    seller = await get_seller(db, seller_id)
    seller.suspended = suspended
    action = "seller.suspend" if suspended else "seller.unsuspend"
    record_audit(db, actor.id, action, "seller", seller.id, email=seller.email)
    await db.commit()
    await db.refresh(seller)
    logger.info("seller_suspension_changed", seller_id=seller.id, suspended=suspended, actor_id=actor.id)
    return seller


async def set_ticket_limit(db: AsyncSession, seller_id: int, new_limit: int, actor: Principal) -> User:
    """
    Change a seller's quota.
    Raises 400 for negative/non-integer limits or limits below tickets already sold.
    """
    if isinstance(new_limit, bool) or not isinstance(new_limit, int) or new_limit < 0:
        raise ValidationFailed("ticket_limit must be a non-negative integer")

    seller = await get_seller(db, seller_id)
    previous_limit = seller.ticket_limit
    sold = seller.tickets_sold

    result = await db.execute(
        update(User)
        .where(User.id == seller_id, User.role == ROLE_SELLER, User.tickets_sold <= new_limit)
        .values(ticket_limit=new_limit)
    )
    if result.rowcount == 0:
        await db.rollback()
        logger.warning("ticket_limit_rejected", seller_id=seller_id, requested=new_limit, sold=sold)
        raise ValidationFailed(f"ticket_limit cannot be lower than tickets already sold ({sold})")

    record_audit(
        db, actor.id, "seller.limit", "seller", seller_id,
        previous_limit=previous_limit, ticket_limit=new_limit,
    )
    await db.commit()
    seller = await get_seller(db, seller_id, refresh=True)
    logger.info("ticket_limit_changed", seller_id=seller_id, previous=previous_limit, limit=new_limit)
    return seller


async def delete_seller(db: AsyncSession, seller_id: int, actor: Principal) -> None:
    """
    Delete a suspended seller with their tickets and those tickets' scan logs,
    all in one transaction.
    """
    seller = await get_seller(db, seller_id)
    if not seller.suspended:
        raise PreconditionFailed("Suspend the seller before deleting.")
    email = seller.email

    ticket_ids = select(Ticket.id).where(Ticket.seller_id == seller_id)
    # Dependent rows are not in the identity map by default; skip session sync
    logs = await db.execute(
        delete(ScanLog).where(ScanLog.ticket_id.in_(ticket_ids)).execution_options(synchronize_session=False)
    )
    tickets = await db.execute(
        delete(Ticket).where(Ticket.seller_id == seller_id).execution_options(synchronize_session=False)
    )
    removed = await db.execute(
        delete(User).where(User.id == seller_id, User.role == ROLE_SELLER, User.suspended == True)  # noqa: E712
    )
    if removed.rowcount == 0:
        # Unsuspended between the check and the delete
        await db.rollback()
        raise PreconditionFailed("Suspend the seller before deleting.")

    record_audit(
        db, actor.id, "seller.delete", "seller", seller_id,
        email=email, tickets_deleted=tickets.rowcount, scan_logs_deleted=logs.rowcount,
    )
    await db.commit()
    logger.info(
        "seller_deleted",
        seller_id=seller_id,
        tickets_deleted=tickets.rowcount,
        scan_logs_deleted=logs.rowcount,
        actor_id=actor.id,
    )


async def seller_summary(db: AsyncSession, seller_id: int) -> SellerSummary:
    seller = await get_seller(db, seller_id, refresh=True)
    result = await db.execute(
        select(
            func.count(Ticket.id),
            func.coalesce(func.sum(case((Ticket.status == STATUS_USED, 1), else_=0)), 0),
        ).where(Ticket.seller_id == seller_id)
    )
    total, used = result.one()
    return SellerSummary(
        total=total or 0,
        used=used or 0,
        remaining=seller.remaining_tickets,
        limit=seller.ticket_limit,
        sold=seller.tickets_sold,
    )
