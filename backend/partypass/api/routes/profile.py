"""
Self-service profile for the authenticated caller.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.security import get_current_user_id
from partypass.db.session import get_db
from partypass.schemas.user import ProfileUpdate, UserResponse
from partypass.services.auth_service import get_profile, update_profile

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=UserResponse)
async def read_profile(user_id: int = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await get_profile(db, user_id)


@router.put("", response_model=UserResponse)
async def edit_profile(
    profile: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await update_profile(db, user_id, profile)
