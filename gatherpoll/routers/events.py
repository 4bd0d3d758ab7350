"""Organizer API routes — authenticated channel, delegates to the services."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gatherpoll.config import settings
from gatherpoll.database import get_db
from gatherpoll.dependencies import get_current_user, get_session_identity
from gatherpoll.errors import NotFoundError
from gatherpoll.models.user import User
from gatherpoll.schemas.event import (
    ConfirmRequest,
    EventAggregateOut,
    EventCancelRequest,
    EventCreate,
    EventOut,
    EventSummaryOut,
    EventWithSlotsOut,
    SlotBatch,
    SlotOut,
    SlotWithVotesOut,
)
from gatherpoll.schemas.vote import VoteCreate, VoteOut
from gatherpoll.services import aggregate_service, event_service, vote_service
from gatherpoll.services.aggregate_service import EventAggregate
from gatherpoll.services.identity_service import SessionIdentityProvider, resolve_identity

logger = logging.getLogger(__name__)
router = APIRouter()


def share_url(event_id: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/event/{event_id}"


def aggregate_response(aggregate: EventAggregate) -> EventAggregateOut:
    return EventAggregateOut(
        event=EventOut.model_validate(aggregate.event),
        slots=[SlotWithVotesOut.model_validate(slot) for slot in aggregate.slots],
        best_slot_id=aggregate.best_slot_id,
        share_url=share_url(aggregate.event.event_id),
    )


@router.post("/", response_model=EventWithSlotsOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a poll and its candidate slots; the caller becomes the organizer."""
    event, slots = event_service.create_event_with_slots(
        db=db,
        title=payload.title,
        organizer=user,
        candidates=payload.slots,
        description=payload.description,
        event_id=payload.id,
    )
    return EventWithSlotsOut(
        event=EventOut.model_validate(event),
        slots=[SlotOut.model_validate(slot) for slot in slots],
    )


@router.get("/", response_model=list[EventOut])
def list_events(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The signed-in organizer's events, newest first."""
    return event_service.list_organizer_events(db, user.user_id)


@router.get("/summary", response_model=EventSummaryOut)
def summarize_events(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return event_service.summarize_events(db, user.user_id)


@router.get("/{event_id}", response_model=EventAggregateOut)
def get_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Event with slots and live tallies."""
    aggregate = aggregate_service.load_aggregate(db, event_id)
    if aggregate is None:
        raise NotFoundError(detail="Event not found", event_id=event_id)
    return aggregate_response(aggregate)


@router.post("/{event_id}/slots", response_model=list[SlotOut], status_code=status.HTTP_201_CREATED)
def retry_slots(
    event_id: str,
    payload: SlotBatch,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Save the slot batch of an event whose first slot write failed."""
    return event_service.retry_slots(db, event_id, user.user_id, payload.slots)


@router.post("/{event_id}/votes", response_model=VoteOut)
def vote(
    event_id: str,
    payload: VoteCreate,
    identity: SessionIdentityProvider = Depends(get_session_identity),
    db: Session = Depends(get_db),
):
    """Record the signed-in user's availability for one slot."""
    voter = resolve_identity(identity, event_id)
    return vote_service.upsert_vote(
        db=db,
        event_id=event_id,
        slot_id=payload.slot_id,
        user_id=voter.id,
        user_name=voter.name,
        availability=payload.availability,
    )


@router.post("/{event_id}/confirm", response_model=EventOut)
def confirm_slot(
    event_id: str,
    payload: ConfirmRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Close the poll on the chosen slot (organizer only)."""
    return event_service.confirm_slot(db, event_id, payload.slot_id, user.user_id)


@router.post("/{event_id}/cancel", response_model=EventOut)
def cancel_event(
    event_id: str,
    payload: EventCancelRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancel an open poll (organizer only)."""
    return event_service.cancel_poll(db, event_id, user.user_id, payload.cancel_reason)
