"""Event and TimeSlot ORM models."""
import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Date, Time, DateTime, Integer, ForeignKey, Enum as SAEnum

from gatherpoll.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    confirmed = "confirmed"
    cancelled = "cancelled"


# Statuses in which the poll no longer accepts votes or transitions
CLOSED_STATUSES = (EventStatus.confirmed, EventStatus.cancelled)


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    organizer_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    organizer_name = Column(String(100), nullable=False)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.active)
    confirmed_slot_id = Column(String(64), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TimeSlot(Base):
    __tablename__ = "time_slots"

    slot_id = Column(String(64), primary_key=True, default=lambda: f"slot_{uuid.uuid4().hex}")
    event_id = Column(String(64), ForeignKey("events.event_id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
