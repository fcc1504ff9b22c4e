"""
Admin dashboard rollups.
"""

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.models.event import Event
from partypass.models.ticket import STATUS_USED, Ticket
from partypass.models.user import ROLE_SELLER, User
from partypass.schemas.admin import StatsResponse


async def get_stats(db: AsyncSession) -> StatsResponse:
    tickets = await db.execute(
        select(
            func.count(Ticket.id),
            func.coalesce(func.sum(case((Ticket.status == STATUS_USED, 1), else_=0)), 0),
        )
    )
    total_tickets, used_tickets = tickets.one()

    sellers = await db.scalar(select(func.count(User.id)).where(User.role == ROLE_SELLER))

    events = await db.execute(
        select(
            func.count(Event.id),
            func.coalesce(func.sum(case((Event.active.is_(True), 1), else_=0)), 0),
        )
    )
    total_events, active_events = events.one()

    total_tickets = total_tickets or 0
    used_tickets = used_tickets or 0
    return StatsResponse(
        total_tickets=total_tickets,
        used_tickets=used_tickets,
        unused_tickets=total_tickets - used_tickets,
        sellers=sellers or 0,
        events=total_events or 0,
        active_events=active_events or 0,
    )
