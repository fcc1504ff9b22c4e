"""
Pydantic schemas for redemption and scan history.
"""

import datetime as dt
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from partypass.schemas.ticket import TicketResponse


class ScanRequest(BaseModel):
    # Blank codes are rejected by scan_service so the error shape matches other failures
    ticket_code: str = Field(
        "",
        max_length=64,
        validation_alias=AliasChoices("ticket_code", "ticketCode"),
    )

    model_config = {"str_strip_whitespace": True}


class ScanResponse(BaseModel):
    message: str = "Ticket verified"
    ticket: TicketResponse


class ScanLogResponse(BaseModel):
    id: int
    ticket_id: int
    ticket_code: str
    scanned_at: dt.datetime
    scanner_id: Optional[int] = None
    scanner_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_whatsapp: Optional[str] = None
    issued_at: Optional[dt.datetime] = None
    event_name: Optional[str] = None
    seller_name: Optional[str] = None
