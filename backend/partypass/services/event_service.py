"""
Event service handling CRUD operations and the active/inactive lifecycle.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.exceptions import NotFound, PreconditionFailed
from partypass.core.logging import get_logger
from partypass.core.security import Principal
from partypass.models.event import Event
from partypass.models.scan_log import ScanLog
from partypass.models.ticket import Ticket
from partypass.schemas.event import EventCreate, EventUpdate
from partypass.services.audit_service import record_audit

logger = get_logger(__name__)


def _describe(event: Event) -> dict:
    return {
        "name": event.name,
        "date": event.date.isoformat(),
        "time": event.time.isoformat(timespec="minutes"),
        "venue": event.venue,
    }


async def create_event(db: AsyncSession, event_data: EventCreate, actor: Principal) -> Event:
    """Create a new event; events start active."""
    event = Event(
        name=event_data.name,
        date=event_data.date,
        time=event_data.time,
        venue=event_data.venue,
        active=True,
    )
    db.add(event)
    await db.flush()
    record_audit(db, actor.id, "event.create", "event", event.id, **_describe(event))
    await db.commit()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, name=event.name, actor_id=actor.id)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


async def list_events(db: AsyncSession, active_only: bool = False) -> list[Event]:
    """Newest events first, optionally only those open for issuance."""
    query = select(Event)
    if active_only:
        query = query.where(Event.active.is_(True))
    result = await db.execute(query.order_by(Event.id.desc()))
    return list(result.scalars().all())


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, actor: Principal) -> Event:
    """
    Edit event fields. Tickets already issued keep their snapshot of the old values.
    """
    event = await get_event(db, event_id)
    before = _describe(event)
    event.name = event_data.name
    event.date = event_data.date
    event.time = event_data.time
    event.venue = event_data.venue
    record_audit(db, actor.id, "event.update", "event", event.id, before=before, after=_describe(event))
    await db.commit()
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id, actor_id=actor.id)
    return event


async def set_event_active(db: AsyncSession, event_id: int, active: bool, actor: Principal) -> Event:
    """Open or close an event for issuance. Issued tickets are unaffected."""
    event = await get_event(db, event_id)
    event.active = active
    action = "event.activate" if active else "event.deactivate"
    record_audit(db, actor.id, action, "event", event.id, name=event.name)
    await db.commit()
    await db.refresh(event)

    logger.info("event_activation_changed", event_id=event.id, active=active, actor_id=actor.id)
    return event


async def delete_event(db: AsyncSession, event_id: int, actor: Principal) -> None:
    """
    Delete an inactive event together with its tickets and their scan logs.
    Raises 400 while the event is still active.
    """
    event = await get_event(db, event_id)
    if event.active:
        raise PreconditionFailed("Deactivate the event before deleting.")
    name = event.name

    ticket_ids = select(Ticket.id).where(Ticket.event_id == event_id)
    # Dependent rows are not in the identity map by default; skip session sync
    logs = await db.execute(
        delete(ScanLog).where(ScanLog.ticket_id.in_(ticket_ids)).execution_options(synchronize_session=False)
    )
    tickets = await db.execute(
        delete(Ticket).where(Ticket.event_id == event_id).execution_options(synchronize_session=False)
    )
    removed = await db.execute(
        delete(Event).where(Event.id == event_id, Event.active == False)  # noqa: E712
    )
    if removed.rowcount == 0:
        # Reactivated between the check and the delete
        await db.rollback()
        raise PreconditionFailed("Deactivate the event before deleting.")

    record_audit(
        db, actor.id, "event.delete", "event", event_id,
        name=name, tickets_deleted=tickets.rowcount, scan_logs_deleted=logs.rowcount,
    )
    await db.commit()
    logger.info(
        "event_deleted",
        event_id=event_id,
        tickets_deleted=tickets.rowcount,
        scan_logs_deleted=logs.rowcount,
        actor_id=actor.id,
    )
