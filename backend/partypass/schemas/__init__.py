from partypass.schemas.user import (
    SellerRegister, UserLogin, UserResponse, LoginResponse, ProfileUpdate, SellerLimitUpdate,
)
from partypass.schemas.event import EventCreate, EventUpdate, EventResponse, EventSnapshot
from partypass.schemas.ticket import TicketCreate, TicketResponse, TicketIssued
from partypass.schemas.scan import ScanRequest, ScanResponse, ScanLogResponse
from partypass.schemas.admin import StatsResponse, AuditLogResponse

__all__ = [
    "SellerRegister", "UserLogin", "UserResponse", "LoginResponse", "ProfileUpdate", "SellerLimitUpdate",
    "EventCreate", "EventUpdate", "EventResponse", "EventSnapshot",
    "TicketCreate", "TicketResponse", "TicketIssued",
    "ScanRequest", "ScanResponse", "ScanLogResponse",
    "StatsResponse", "AuditLogResponse",
]
