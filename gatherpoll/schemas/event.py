"""Pydantic schemas for Events, TimeSlots and the poll aggregate."""
from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field

from gatherpoll.models.event import EventStatus
from gatherpoll.schemas.vote import VoteOut


class SlotCreate(BaseModel):
    date: date
    start_time: time
    end_time: time


class EventCreate(BaseModel):
    # Ids appear as a path segment, so no slashes
    id: Optional[str] = Field(default=None, min_length=1, max_length=64, pattern=r"^[^/]+$")
    title: str = Field(max_length=255)
    description: Optional[str] = None
    slots: list[SlotCreate]


class SlotBatch(BaseModel):
    slots: list[SlotCreate]


class ConfirmRequest(BaseModel):
    slot_id: str


class EventCancelRequest(BaseModel):
    cancel_reason: Optional[str] = None


class EventOut(BaseModel):
    event_id: str
    title: str
    description: Optional[str] = None
    organizer_id: str
    organizer_name: str
    status: EventStatus
    confirmed_slot_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SlotOut(BaseModel):
    slot_id: str
    event_id: str
    date: date
    start_time: time
    end_time: time
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotWithVotesOut(SlotOut):
    votes: list[VoteOut] = []
    yes_count: int
    maybe_count: int
    no_count: int
    total_votes: int


class EventWithSlotsOut(BaseModel):
    event: EventOut
    slots: list[SlotOut]


class EventAggregateOut(BaseModel):
    event: EventOut
    slots: list[SlotWithVotesOut]
    best_slot_id: Optional[str] = None
    share_url: str


class EventSummaryOut(BaseModel):
    total: int
    draft: int
    active: int
    confirmed: int
    cancelled: int
