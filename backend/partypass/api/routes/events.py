"""
Event endpoints. Writes are admin only; sellers can read events to issue against them.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.security import Principal, require_admin, require_member
from partypass.db.session import get_db
from partypass.schemas.event import EventCreate, EventResponse, EventUpdate
from partypass.schemas.user import MessageResponse
from partypass.services.event_service import (
    create_event,
    delete_event,
    get_event,
    list_events,
    set_event_active,
    update_event,
)

router = APIRouter(prefix="/events", tags=["Events"])
admin_router = APIRouter(prefix="/admin/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_event(db, event_data, admin)


@router.get("", response_model=list[EventResponse])
async def list_events_endpoint(
    active: bool = Query(False, description="Only events open for issuance"),
    _: Principal = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    return await list_events(db, active_only=active)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    _: Principal = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    return await get_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit an event. Tickets already issued keep the details they were sold with."""
    return await update_event(db, event_id, event_data, admin)


@router.patch("/{event_id}/activate", response_model=EventResponse)
async def activate_event_endpoint(
    event_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await set_event_active(db, event_id, True, admin)


@router.patch("/{event_id}/deactivate", response_model=EventResponse)
async def deactivate_event_endpoint(
    event_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await set_event_active(db, event_id, False, admin)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an inactive event and every ticket issued for it."""
    await delete_event(db, event_id, admin)
    return MessageResponse(message="Event deleted")


@admin_router.get("", response_model=list[EventResponse])
async def admin_list_events_endpoint(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_events(db)
