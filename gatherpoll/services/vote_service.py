"""Vote ledger — at most one vote per (slot, voter).

The write is a single ``INSERT ... ON CONFLICT (slot_id, user_id) DO UPDATE``
so two near-simultaneous votes from one voter on one slot cannot produce two
rows. The conflict branch refreshes availability, user_name and updated_at
and leaves vote_id and created_at untouched.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from gatherpoll.errors import NotFoundError, PollClosedError, ValidationFailedError
from gatherpoll.models.event import Event, TimeSlot, CLOSED_STATUSES
from gatherpoll.models.vote import Vote, Availability

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _new_vote_id() -> str:
    return f"vote_{uuid.uuid4().hex}"


def _write_vote(db: Session, values: dict) -> None:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Vote upsert is not supported on the {dialect} dialect")

    stmt = insert(Vote).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["slot_id", "user_id"],
        set_={
            "availability": stmt.excluded.availability,
            "user_name": stmt.excluded.user_name,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)


def upsert_vote(
    db: Session,
    event_id: str,
    slot_id: str,
    user_id: str,
    user_name: str,
    availability: str,
) -> Vote:
    """Record ``user_id``'s availability for ``slot_id`` and return the stored vote."""
    try:
        availability = Availability(availability)
    except ValueError:
        raise ValidationFailedError(detail=f"Invalid availability: {availability}")

    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError(detail="Event not found", event_id=event_id)
    if event.status in CLOSED_STATUSES:
        raise PollClosedError(
            detail=f"Voting is closed for this event ({event.status.value})",
            event_id=event_id,
        )

    slot = (
        db.query(TimeSlot)
        .filter(TimeSlot.slot_id == slot_id, TimeSlot.event_id == event_id)
        .first()
    )
    if not slot:
        raise NotFoundError(detail="Time slot not found", event_id=event_id, slot_id=slot_id)

    now = datetime.now(timezone.utc)
    _write_vote(db, {
        "vote_id": _new_vote_id(),
        "event_id": event_id,
        "slot_id": slot_id,
        "user_id": user_id,
        "user_name": user_name,
        "availability": availability,
        "created_at": now,
        "updated_at": now,
    })
    db.commit()

    vote = (
        db.query(Vote)
        .filter(Vote.slot_id == slot_id, Vote.user_id == user_id)
        .populate_existing()
        .one()
    )
    logger.info("User %s voted '%s' on slot %s of event %s", user_id, availability.value, slot_id, event_id)
    return vote
