"""Pydantic schemas for Votes."""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel

from gatherpoll.models.vote import Availability


class VoteCreate(BaseModel):
    slot_id: str
    availability: Availability


class VoteOut(BaseModel):
    vote_id: str
    event_id: str
    slot_id: str
    user_id: str
    user_name: str
    availability: Availability
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
