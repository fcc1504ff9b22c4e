"""
Pydantic schemas for ticket issuance and ticket views.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from partypass.schemas.event import EventSnapshot


class TicketCreate(BaseModel):
    event_id: int
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_whatsapp: str = Field(..., min_length=1, max_length=64)

    model_config = {"str_strip_whitespace": True}


class TicketResponse(BaseModel):
    id: int
    event_id: int
    seller_id: int
    event_name: str
    event_date: dt.date
    event_time: dt.time
    event_venue: str
    customer_name: str
    customer_whatsapp: str
    ticket_code: str
    qr_code_data: str
    status: str
    issued_at: dt.datetime
    scanned_at: Optional[dt.datetime] = None
    seller_name: Optional[str] = None

    model_config = {"from_attributes": True}


class TicketIssued(BaseModel):
    message: str = "Ticket generated"
    ticket_id: int
    ticket_code: str
    qr: str
    event: EventSnapshot
    customer_name: str
    customer_whatsapp: str
    notifications: dict[str, str]
