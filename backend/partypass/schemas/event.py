"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    time: dt.time
    venue: str = Field(..., min_length=1, max_length=255)

    model_config = {"str_strip_whitespace": True}


class EventUpdate(EventCreate):
    pass


class EventResponse(BaseModel):
    id: int
    name: str
    date: dt.date
    time: dt.time
    venue: str
    active: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class EventSnapshot(BaseModel):
    id: int
    name: str
    date: dt.date
    time: dt.time
    venue: str
