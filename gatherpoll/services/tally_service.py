"""Tally engine — per-slot vote counts and best-slot selection.

Everything here is a pure function of its inputs. Counts are rebuilt from the
stored votes on every read and never patched incrementally.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, time, datetime
from typing import Iterable, Optional

from gatherpoll.models.event import TimeSlot
from gatherpoll.models.vote import Vote, Availability


@dataclass
class SlotWithVotes:
    """A time slot joined with its votes and their counts."""

    slot_id: str
    event_id: str
    date: date
    start_time: time
    end_time: time
    created_at: datetime
    votes: list[Vote] = field(default_factory=list)
    yes_count: int = 0
    maybe_count: int = 0
    no_count: int = 0
    total_votes: int = 0


def tally(slot: TimeSlot, votes: Iterable[Vote]) -> SlotWithVotes:
    """Count ``votes`` cast on ``slot``; votes for other slots are ignored."""
    slot_votes = [v for v in votes if v.slot_id == slot.slot_id]
    counts = Counter(Availability(v.availability) for v in slot_votes)
    yes = counts[Availability.yes]
    maybe = counts[Availability.maybe]
    no = counts[Availability.no]
    return SlotWithVotes(
        slot_id=slot.slot_id,
        event_id=slot.event_id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        created_at=slot.created_at,
        votes=slot_votes,
        yes_count=yes,
        maybe_count=maybe,
        no_count=no,
        total_votes=yes + maybe + no,
    )


def select_best_slot(slots: Iterable[SlotWithVotes]) -> Optional[SlotWithVotes]:
    """Slot with the most yes votes; the earliest one wins a tie.

    A slot is returned even when every yes count is zero. Use
    :func:`best_option` when the result is shown to people.
    """
    best = None
    for slot in slots:
        if best is None or slot.yes_count > best.yes_count:
            best = slot
    return best


def best_option(slots: Iterable[SlotWithVotes]) -> Optional[SlotWithVotes]:
    """Like :func:`select_best_slot`, but ``None`` unless the winner has a yes vote."""
    best = select_best_slot(slots)
    if best is None or best.yes_count == 0:
        return None
    return best
