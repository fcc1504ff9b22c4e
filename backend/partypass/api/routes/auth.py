"""
Authentication endpoints: seller registration and login.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.api.deps import rate_limit
from partypass.db.session import get_db
from partypass.schemas.user import LoginResponse, RegisterResponse, SellerRegister, UserLogin, UserResponse
from partypass.services.auth_service import authenticate_user, register_user

router = APIRouter(tags=["Authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("register"))],
)
async def register(user_data: SellerRegister, db: AsyncSession = Depends(get_db)):
    """Register a seller account. It cannot log in until an admin approves it."""
    user = await register_user(db, user_data)
    return RegisterResponse(message="Registered. Await admin approval.", id=user.id)


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(rate_limit("login"))])
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a bearer session token."""
    user, token = await authenticate_user(db, login_data)
    return LoginResponse(user=UserResponse.model_validate(user), token=token)
