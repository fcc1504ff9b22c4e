"""
Pydantic schemas for identity, profile and seller-management payloads.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field, StrictInt


class SellerRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    # Minimum length is a runtime setting, checked in auth_service
    password: str = Field(..., min_length=1, max_length=72)
    whatsapp: str = Field(
        ...,
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("whatsapp", "seller_whatsapp"),
    )

    model_config = {"str_strip_whitespace": True}


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    ticket_limit: int
    tickets_sold: int
    approved: bool
    suspended: bool
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class RegisterResponse(BaseModel):
    message: str
    id: int


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=64)
    whatsapp: Optional[str] = Field(
        None,
        max_length=64,
        validation_alias=AliasChoices("whatsapp", "seller_whatsapp"),
    )
    avatar_url: Optional[str] = Field(None, max_length=1024)

    model_config = {"str_strip_whitespace": True}


class SellerLimitUpdate(BaseModel):
    # Strict: 2.5, "3" and true are rejected rather than coerced
    ticket_limit: StrictInt


class SellerSummary(BaseModel):
    total: int
    used: int
    remaining: int
    limit: int
    sold: int


class MessageResponse(BaseModel):
    message: str


class ApprovalResponse(BaseModel):
    message: str
    notifications: dict[str, str]
