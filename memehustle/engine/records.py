"""
memehustle.engine.records — MemeRecord and BidRecord
=====================================================

Plain value objects handed out by every record store.  Stores always return
copies, so callers may read or serialise them freely without touching the
authoritative state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

__all__ = ["MemeRecord", "BidRecord", "normalize_tags"]


def normalize_tags(tags: list[str] | tuple[str, ...] | None) -> list[str]:
    """Trim, drop empties and de-duplicate *tags* keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or ():
        token = str(tag).strip()
        if token and token not in seen:
            seen[token] = None
    return list(seen)


@dataclass(slots=True)
class MemeRecord:
    """A single meme as stored and displayed."""

    id: str
    title: str
    image_url: str
    tags: list[str]
    owner_id: str
    upvotes: int = 0
    downvotes: int = 0
    highest_bid: int = 0
    highest_bidder: str = ""
    caption: str = ""
    vibe: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def copy(self) -> MemeRecord:
        data = asdict(self)
        return MemeRecord(**data)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemeRecord:
        created = data.get("created_at")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        return cls(
            id=str(data["id"]),
            title=data["title"],
            image_url=data.get("image_url") or "",
            tags=list(data.get("tags") or []),
            owner_id=data.get("owner_id") or "",
            upvotes=int(data.get("upvotes") or 0),
            downvotes=int(data.get("downvotes") or 0),
            highest_bid=int(data.get("highest_bid") or 0),
            highest_bidder=data.get("highest_bidder") or "",
            caption=data.get("caption") or "",
            vibe=data.get("vibe") or "",
            created_at=created or datetime.now(UTC),
        )


@dataclass(frozen=True, slots=True)
class BidRecord:
    """One accepted bid — an entry in the append-only bid log."""

    meme_id: str
    user_id: str
    credits: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "meme_id": self.meme_id,
            "user_id": self.user_id,
            "credits": self.credits,
            "created_at": self.created_at.isoformat(),
        }
