"""
Pydantic schemas for admin read-side rollups.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class StatsResponse(BaseModel):
    total_tickets: int
    used_tickets: int
    unused_tickets: int
    sellers: int
    events: int
    active_events: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_name: Optional[str] = None
    action: str
    target_type: str
    target_id: Optional[int] = None
    details: dict[str, Any]
    created_at: datetime
