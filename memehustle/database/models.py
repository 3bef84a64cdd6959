"""
memehustle.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- memes — one row per meme record (votes, highest bid, enrichment fields)
- bids  — append-only audit trail of accepted bids
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from memehustle.constants import USER_ID_MAX_LENGTH


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all MemeHustle ORM models."""


# ---------------------------------------------------------------------------
# Memes
# ---------------------------------------------------------------------------
class Meme(Base):
    __tablename__ = "memes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
    owner_id: Mapped[str] = mapped_column(String(USER_ID_MAX_LENGTH), nullable=False)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    highest_bid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    highest_bidder: Mapped[str] = mapped_column(String(USER_ID_MAX_LENGTH), nullable=False, default="")
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    vibe: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Set client-side so the value is known before the INSERT round-trip.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    bids: Mapped[list[Bid]] = relationship(
        back_populates="meme", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_memes_created_at", "created_at"),
        Index("ix_memes_upvotes", "upvotes"),
    )

    def __repr__(self) -> str:
        return f"<Meme id={self.id} title={self.title!r} up={self.upvotes}>"


# ---------------------------------------------------------------------------
# Bids — append-only
# ---------------------------------------------------------------------------
class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meme_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("memes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(USER_ID_MAX_LENGTH), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    meme: Mapped[Meme] = relationship(back_populates="bids")

    __table_args__ = (
        Index("ix_bids_meme_id", "meme_id"),
    )

    def __repr__(self) -> str:
        return f"<Bid meme={self.meme_id} user={self.user_id!r} credits={self.credits}>"
