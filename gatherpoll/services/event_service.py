"""Event service — slot store and poll state machine.

Responsibilities:
- Two-phase creation: event row first, then its slot batch
- Authorization hook: only the organizer may confirm, cancel or retry slots
- Compare-and-swap transitions: a closed poll is never reopened or re-closed
- Mutation ledger (EventMutations) for every organizer write
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gatherpoll.errors import (
    ConflictError,
    NotFoundError,
    PollClosedError,
    SlotCreationError,
    UnauthorizedError,
    ValidationFailedError,
)
from gatherpoll.models.event import Event, EventStatus, TimeSlot, CLOSED_STATUSES
from gatherpoll.models.event_mutation import EventMutation, ActionType
from gatherpoll.models.user import User
from gatherpoll.models.vote import Vote
from gatherpoll.services.tally_service import tally

logger = logging.getLogger(__name__)


class SlotCandidate(Protocol):
    date: Any
    start_time: Any
    end_time: Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _event_snapshot(event: Event) -> dict[str, Any]:
    """Serialize an event to a JSON-safe dict for the mutation ledger."""
    return {
        "event_id": event.event_id,
        "title": event.title,
        "status": event.status.value if event.status else None,
        "confirmed_slot_id": event.confirmed_slot_id,
        "version": event.version,
    }


def _record_mutation(
    db: Session,
    event: Event,
    actor_user_id: str,
    action: ActionType,
    before: Optional[dict[str, Any]],
) -> None:
    db.add(EventMutation(
        event_id=event.event_id,
        actor_user_id=actor_user_id,
        action_type=action,
        before_snapshot=before,
        after_snapshot=_event_snapshot(event),
        idempotency_key=str(uuid.uuid4()),
    ))


def _check_authorization(event: Event, actor_user_id: str) -> None:
    if event.organizer_id != actor_user_id:
        raise UnauthorizedError(event_id=event.event_id)


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError(detail="Event not found", event_id=event_id)
    return event


def create_event(
    db: Session,
    title: str,
    organizer: User,
    description: Optional[str] = None,
    event_id: Optional[str] = None,
) -> Event:
    """Write the event row. New polls open in ``active``."""
    title = (title or "").strip()
    if not title:
        raise ValidationFailedError(detail="Event title is required")

    event = Event(
        event_id=event_id or str(uuid.uuid4()),
        title=title,
        description=(description or "").strip() or None,
        organizer_id=organizer.user_id,
        organizer_name=organizer.display_name,
        status=EventStatus.active,
        version=1,
    )
    db.add(event)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(detail="An event with this id already exists", event_id=event.event_id)

    _record_mutation(db, event, organizer.user_id, ActionType.create, before=None)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by organizer %s", title, event.event_id, organizer.user_id)
    return event


def create_slots(db: Session, event_id: str, candidates: Iterable[SlotCandidate]) -> list[TimeSlot]:
    """Persist a batch of candidate slots, returned in the order given."""
    candidates = list(candidates)
    if not candidates:
        raise ValidationFailedError(detail="At least one time slot is required", event_id=event_id)
    get_event(db, event_id)

    now = _utcnow()
    slots = [
        TimeSlot(
            slot_id=f"slot_{uuid.uuid4().hex}",
            event_id=event_id,
            date=c.date,
            start_time=c.start_time,
            end_time=c.end_time,
            position=position,
            created_at=now,
        )
        for position, c in enumerate(candidates)
    ]
    db.add_all(slots)
    db.commit()
    logger.info("Created %d time slots for event %s", len(slots), event_id)
    return slots


def create_event_with_slots(
    db: Session,
    title: str,
    organizer: User,
    candidates: Iterable[SlotCandidate],
    description: Optional[str] = None,
    event_id: Optional[str] = None,
) -> tuple[Event, list[TimeSlot]]:
    """Create an event and its slots as two writes.

    If the slot write fails the event already exists; ``SlotCreationError``
    carries its id so only the slots need retrying.
    """
    candidates = list(candidates)
    if not candidates:
        raise ValidationFailedError(detail="At least one time slot is required")

    event = create_event(db, title, organizer, description=description, event_id=event_id)
    try:
        slots = create_slots(db, event.event_id, candidates)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Slot creation failed for event %s", event.event_id)
        raise SlotCreationError(event_id=event.event_id) from exc
    return event, slots


def retry_slots(
    db: Session,
    event_id: str,
    actor_user_id: str,
    candidates: Iterable[SlotCandidate],
) -> list[TimeSlot]:
    """Second attempt at the slot batch for an event that has none."""
    event = get_event(db, event_id)
    _check_authorization(event, actor_user_id)
    if event.status in CLOSED_STATUSES:
        raise PollClosedError(event_id=event_id, status=event.status.value)

    existing = db.query(func.count(TimeSlot.slot_id)).filter(TimeSlot.event_id == event_id).scalar()
    if existing:
        raise ConflictError(detail="Event already has time slots", event_id=event_id)
    return create_slots(db, event_id, candidates)


def _transition(db: Session, event: Event, changes: dict[str, Any]) -> bool:
    """Apply ``changes`` only if the poll is still open. Returns False if it was not."""
    values = dict(changes)
    values[Event.updated_at] = _utcnow()
    values[Event.version] = Event.version + 1
    updated = (
        db.query(Event)
        .filter(Event.event_id == event.event_id, Event.status.notin_(CLOSED_STATUSES))
        .update(values, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        return False
    db.refresh(event)
    return True


def confirm_slot(db: Session, event_id: str, slot_id: str, actor_user_id: str) -> Event:
    """Close the poll on ``slot_id``.

    Repeating a confirmation of the same slot returns the event unchanged;
    the first confirmation of an event wins over any later one.
    """
    event = get_event(db, event_id)
    _check_authorization(event, actor_user_id)

    if event.status == EventStatus.confirmed:
        if event.confirmed_slot_id == slot_id:
            return event
        raise PollClosedError(
            detail="Event is already confirmed",
            event_id=event_id,
            confirmed_slot_id=event.confirmed_slot_id,
        )
    if event.status == EventStatus.cancelled:
        raise PollClosedError(detail="Event is cancelled", event_id=event_id)

    slot = (
        db.query(TimeSlot)
        .filter(TimeSlot.slot_id == slot_id, TimeSlot.event_id == event_id)
        .first()
    )
    if not slot:
        raise NotFoundError(detail="Time slot not found", event_id=event_id, slot_id=slot_id)

    votes = db.query(Vote).filter(Vote.slot_id == slot_id).all()
    if tally(slot, votes).yes_count == 0:
        raise ValidationFailedError(detail="Cannot confirm a time slot without yes votes", slot_id=slot_id)

    before = _event_snapshot(event)
    swapped = _transition(db, event, {
        Event.status: EventStatus.confirmed,
        Event.confirmed_slot_id: slot_id,
    })
    if not swapped:
        event = get_event(db, event_id)
        if event.status == EventStatus.confirmed and event.confirmed_slot_id == slot_id:
            return event
        logger.warning("Confirmation of %s on event %s lost to a concurrent close", slot_id, event_id)
        raise PollClosedError(
            detail="Event was closed by another session",
            event_id=event_id,
            confirmed_slot_id=event.confirmed_slot_id,
        )

    _record_mutation(db, event, actor_user_id, ActionType.confirm, before)
    db.commit()
    db.refresh(event)
    logger.info("Confirmed slot %s for event %s", slot_id, event_id)
    return event


def cancel_poll(
    db: Session,
    event_id: str,
    actor_user_id: str,
    cancel_reason: Optional[str] = None,
) -> Event:
    """Cancel an open poll (organizer only)."""
    event = get_event(db, event_id)
    _check_authorization(event, actor_user_id)
    if event.status in CLOSED_STATUSES:
        raise PollClosedError(detail=f"Event is already {event.status.value}", event_id=event_id)

    before = _event_snapshot(event)
    swapped = _transition(db, event, {
        Event.status: EventStatus.cancelled,
        Event.cancelled_at: _utcnow(),
        Event.cancel_reason: cancel_reason,
    })
    if not swapped:
        raise PollClosedError(detail="Event was closed by another session", event_id=event_id)

    _record_mutation(db, event, actor_user_id, ActionType.cancel, before)
    db.commit()
    db.refresh(event)
    logger.info("Cancelled event %s (reason: %s)", event_id, cancel_reason)
    return event


def list_organizer_events(db: Session, organizer_id: str) -> list[Event]:
    return (
        db.query(Event)
        .filter(Event.organizer_id == organizer_id)
        .order_by(Event.created_at.desc())
        .all()
    )


def summarize_events(db: Session, organizer_id: str) -> dict[str, int]:
    """Counts for the organizer dashboard cards."""
    rows = (
        db.query(Event.status, func.count(Event.event_id))
        .filter(Event.organizer_id == organizer_id)
        .group_by(Event.status)
        .all()
    )
    counts = {status.value: 0 for status in EventStatus}
    for status, count in rows:
        counts[EventStatus(status).value] = count
    return {"total": sum(counts.values()), **counts}
