"""Event aggregate — the single read path for dashboards and public polls."""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from gatherpoll.models.event import Event, TimeSlot
from gatherpoll.models.vote import Vote
from gatherpoll.services.tally_service import SlotWithVotes, tally, best_option

logger = logging.getLogger(__name__)


@dataclass
class EventAggregate:
    event: Event
    slots: list[SlotWithVotes] = field(default_factory=list)

    @property
    def best_slot_id(self) -> Optional[str]:
        """Slot to highlight as the best option, or None while nobody has said yes."""
        best = best_option(self.slots)
        return best.slot_id if best else None


def load_aggregate(db: Session, event_id: str) -> Optional[EventAggregate]:
    """Event, slots and freshly tallied votes; ``None`` when the event does not exist."""
    event = db.query(Event).filter(Event.event_id == event_id).populate_existing().first()
    if event is None:
        logger.info("Aggregate requested for unknown event %s", event_id)
        return None

    slots = (
        db.query(TimeSlot)
        .filter(TimeSlot.event_id == event_id)
        .order_by(TimeSlot.date, TimeSlot.position)
        .all()
    )
    votes = (
        db.query(Vote)
        .filter(Vote.event_id == event_id)
        .order_by(Vote.created_at, Vote.vote_id)
        .populate_existing()
        .all()
    )

    votes_by_slot: dict[str, list[Vote]] = defaultdict(list)
    for vote in votes:
        votes_by_slot[vote.slot_id].append(vote)

    return EventAggregate(
        event=event,
        slots=[tally(slot, votes_by_slot[slot.slot_id]) for slot in slots],
    )
