"""Pydantic schemas for Users and voter identities."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    display_name: str
    email: str


class UserOut(BaseModel):
    user_id: str
    display_name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class VoterRegister(BaseModel):
    name: str
    email: str


class VoterOut(BaseModel):
    id: str
    name: str
    email: str
    anonymous: bool

    model_config = {"from_attributes": True}


class VoterResolution(BaseModel):
    needs_registration: bool
    voter: Optional[VoterOut] = None
