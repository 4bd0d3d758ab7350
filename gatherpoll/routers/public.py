"""Public poll routes — no sign-in, anonymous voters identified by cookie."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gatherpoll.database import get_public_db
from gatherpoll.dependencies import get_local_identity
from gatherpoll.errors import NotFoundError, RegistrationRequiredError
from gatherpoll.routers.events import aggregate_response
from gatherpoll.schemas.event import EventAggregateOut
from gatherpoll.schemas.user import VoterOut, VoterRegister, VoterResolution
from gatherpoll.schemas.vote import VoteCreate, VoteOut
from gatherpoll.services import aggregate_service, event_service, vote_service
from gatherpoll.services.identity_service import LocalIdentityProvider, NeedsRegistration, resolve_identity

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{event_id}", response_model=EventAggregateOut)
def get_public_event(event_id: str, db: Session = Depends(get_public_db)):
    aggregate = aggregate_service.load_aggregate(db, event_id)
    if aggregate is None:
        raise NotFoundError(detail="Event not found", event_id=event_id)
    return aggregate_response(aggregate)


@router.get("/{event_id}/voter", response_model=VoterResolution)
def get_voter(event_id: str, identity: LocalIdentityProvider = Depends(get_local_identity)):
    """The anonymous voter stored on this device for the event, if any."""
    resolved = resolve_identity(identity, event_id)
    if isinstance(resolved, NeedsRegistration):
        return VoterResolution(needs_registration=True)
    return VoterResolution(needs_registration=False, voter=VoterOut.model_validate(resolved))


@router.post("/{event_id}/voter", response_model=VoterOut)
def register_voter(
    event_id: str,
    payload: VoterRegister,
    identity: LocalIdentityProvider = Depends(get_local_identity),
    db: Session = Depends(get_public_db),
):
    """Mint an anonymous voter for the event and persist it in a cookie."""
    event_service.get_event(db, event_id)
    return VoterOut.model_validate(identity.register(event_id, payload.name, payload.email))


@router.post("/{event_id}/votes", response_model=VoteOut)
def vote(
    event_id: str,
    payload: VoteCreate,
    identity: LocalIdentityProvider = Depends(get_local_identity),
    db: Session = Depends(get_public_db),
):
    """Record the anonymous voter's availability for one slot."""
    voter = resolve_identity(identity, event_id)
    if isinstance(voter, NeedsRegistration):
        raise RegistrationRequiredError(event_id=event_id)
    return vote_service.upsert_vote(
        db=db,
        event_id=event_id,
        slot_id=payload.slot_id,
        user_id=voter.id,
        user_name=voter.name,
        availability=payload.availability,
    )
