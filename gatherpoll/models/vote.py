"""Vote ORM model — one row per (slot, voter)."""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum

from gatherpoll.database import Base


class Availability(str, enum.Enum):
    yes = "yes"
    maybe = "maybe"
    no = "no"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("slot_id", "user_id", name="uq_votes_slot_user"),
    )

    vote_id = Column(String(64), primary_key=True)
    event_id = Column(String(64), ForeignKey("events.event_id"), nullable=False, index=True)
    slot_id = Column(String(64), ForeignKey("time_slots.slot_id"), nullable=False)
    # Not a foreign key: anonymous voters have no users row
    user_id = Column(String(64), nullable=False)
    user_name = Column(String(100), nullable=False)
    availability = Column(SAEnum(Availability), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
