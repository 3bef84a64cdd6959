"""
memehustle.engine.events — Broadcast event envelope
====================================================

Every server-side state change is described by one :class:`MemeEvent`.
On the wire an event is a JSON object::

    {"event": "vote_update", "data": {"meme_id": "3", "type": "up", "new_value": 129}}

All payloads carry absolute values (new counts, new fields), never deltas,
so a client may safely apply the same event twice.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from memehustle.constants import VoteType
from memehustle.engine.records import BidRecord, MemeRecord

__all__ = [
    "EventKind",
    "MemeEvent",
    "new_meme",
    "vote_update",
    "new_bid",
    "meme_updated",
]


class EventKind(enum.StrEnum):
    """The four broadcast event kinds."""
    NEW_MEME = "new_meme"
    VOTE_UPDATE = "vote_update"
    NEW_BID = "new_bid"
    MEME_UPDATED = "meme_updated"


@dataclass(frozen=True, slots=True)
class MemeEvent:
    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"event": self.kind.value, "data": self.data}


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def new_meme(record: MemeRecord) -> MemeEvent:
    return MemeEvent(EventKind.NEW_MEME, record.to_dict())


def vote_update(meme_id: str, direction: VoteType, new_value: int) -> MemeEvent:
    return MemeEvent(
        EventKind.VOTE_UPDATE,
        {"meme_id": meme_id, "type": VoteType(direction).value, "new_value": new_value},
    )


def new_bid(bid: BidRecord, record: MemeRecord) -> MemeEvent:
    return MemeEvent(
        EventKind.NEW_BID,
        {
            "meme_id": bid.meme_id,
            "user_id": bid.user_id,
            "credits": bid.credits,
            "meme": record.to_dict(),
        },
    )


def meme_updated(meme_id: str, **fields: Any) -> MemeEvent:
    """Partial update: ``id`` plus only the fields that changed."""
    if not fields:
        raise ValueError("meme_updated requires at least one changed field")
    return MemeEvent(EventKind.MEME_UPDATED, {"id": meme_id, **fields})
