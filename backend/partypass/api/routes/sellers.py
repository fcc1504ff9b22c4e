"""
Seller management endpoints (admin), plus per-seller views for the seller themself.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.api.deps import get_notifier
from partypass.core.security import Principal, ensure_self_or_admin, get_current_user, require_admin
from partypass.db.session import get_db
from partypass.schemas.ticket import TicketResponse
from partypass.schemas.user import (
    ApprovalResponse,
    MessageResponse,
    SellerLimitUpdate,
    SellerSummary,
    UserResponse,
)
from partypass.services.notification_service import NotificationDispatcher
from partypass.services.seller_service import (
    approve_seller,
    delete_seller,
    list_sellers,
    seller_summary,
    set_suspended,
    set_ticket_limit,
)
from partypass.services.ticket_service import list_seller_tickets

router = APIRouter(prefix="/sellers", tags=["Sellers"])


@router.get("", response_model=list[UserResponse])
async def list_sellers_endpoint(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_sellers(db)


@router.patch("/{seller_id}/approve", response_model=ApprovalResponse)
async def approve_seller_endpoint(
    seller_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Approve a seller and notify them. Delivery outcomes are reported, never fatal."""
    _, notifications = await approve_seller(db, seller_id, admin, notifier)
    return ApprovalResponse(message="Seller approved", notifications=notifications)


@router.patch("/{seller_id}/suspend", response_model=MessageResponse)
async def suspend_seller_endpoint(
    seller_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await set_suspended(db, seller_id, True, admin)
    return MessageResponse(message="Seller suspended")


@router.patch("/{seller_id}/unsuspend", response_model=MessageResponse)
async def unsuspend_seller_endpoint(
    seller_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await set_suspended(db, seller_id, False, admin)
    return MessageResponse(message="Seller unsuspended")


@router.patch("/{seller_id}/limit", response_model=UserResponse)
async def set_limit_endpoint(
    seller_id: int,
    payload: SellerLimitUpdate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await set_ticket_limit(db, seller_id, payload.ticket_limit, admin)


@router.delete("/{seller_id}", response_model=MessageResponse)
async def delete_seller_endpoint(
    seller_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a suspended seller together with their tickets."""
    await delete_seller(db, seller_id, admin)
    return MessageResponse(message="Seller deleted")


@router.get("/{seller_id}/summary", response_model=SellerSummary)
async def seller_summary_endpoint(
    seller_id: int,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_self_or_admin(user, seller_id)
    return await seller_summary(db, seller_id)


@router.get("/{seller_id}/tickets", response_model=list[TicketResponse])
async def seller_tickets_endpoint(
    seller_id: int,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_self_or_admin(user, seller_id)
    return await list_seller_tickets(db, seller_id)
