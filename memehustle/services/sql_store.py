"""
memehustle.services.sql_store — Database-backed Record Store
=============================================================

Live-mode :class:`RecordStore` on SQLAlchemy.  Every successful write is
mirrored into an :class:`InMemoryRecordStore`; when the database becomes
unreachable (``OperationalError`` / ``InterfaceError``) the store flips to
*degraded* and serves every subsequent call from that mirror, so callers
never see a backend outage as an error.

Degradation is one-way for the life of the process: switching back would
leave records created during the outage stranded in the mirror.  Restart the
API once the database is healthy again.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TypeVar

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from memehustle.config import DEFAULT_USER_POOL
from memehustle.constants import VoteType
from memehustle.database.engine import get_session, init_db
from memehustle.database.models import Bid, Meme
from memehustle.engine.records import BidRecord, MemeRecord
from memehustle.errors import BackendUnavailable, NotFound
from memehustle.services.record_store import InMemoryRecordStore, RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# DB-API failures that mean "the backend is gone", not "the query is wrong".
_UNAVAILABLE = (OperationalError, InterfaceError)


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_record(row: Meme) -> MemeRecord:
    return MemeRecord(
        id=row.id,
        title=row.title,
        image_url=row.image_url,
        tags=list(row.tags or []),
        owner_id=row.owner_id,
        upvotes=row.upvotes or 0,
        downvotes=row.downvotes or 0,
        highest_bid=row.highest_bid or 0,
        highest_bidder=row.highest_bidder or "",
        caption=row.caption or "",
        vibe=row.vibe or "",
        created_at=_aware(row.created_at),
    )


def _to_bid(row: Bid) -> BidRecord:
    return BidRecord(
        meme_id=row.meme_id,
        user_id=row.user_id,
        credits=row.credits,
        created_at=_aware(row.created_at),
    )


class SqlRecordStore(RecordStore):
    """Record store backed by the ``memes`` / ``bids`` tables.

    Usage::

        store = SqlRecordStore(engine)
        store.warm()                 # create tables + hydrate the mirror
        record = store.create("Doge HODL", tags=["crypto"])
    """

    mode = "live"

    def __init__(
        self,
        engine: Engine,
        mirror: InMemoryRecordStore | None = None,
        user_pool: Sequence[str] = DEFAULT_USER_POOL,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(user_pool, rng)
        self._engine = engine
        self._mirror = mirror or InMemoryRecordStore(user_pool, self._rng)
        self._degraded = False

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def mirror(self) -> InMemoryRecordStore:
        return self._mirror

    # -------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------
    def warm(self) -> bool:
        """Ensure the schema exists and copy every row into the mirror.

        Returns False (and degrades) if the database is unreachable.
        """
        try:
            init_db(self._engine)
            with Session(self._engine) as session:
                rows = session.scalars(
                    select(Meme).order_by(Meme.created_at.desc())
                ).all()
                records = [_to_record(r) for r in rows]
        except _UNAVAILABLE as exc:
            self._degrade("warm", exc)
            return False
        self._mirror.seed(records)
        logger.info("SQL store warmed — %d records mirrored", len(records))
        return True

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Database engine disposed")

    # -------------------------------------------------------------------
    # Fallback plumbing
    # -------------------------------------------------------------------
    def _degrade(self, op: str, exc: BaseException) -> None:
        if not self._degraded:
            logger.error(
                "Database unavailable during %s (%s) — serving from in-memory mirror",
                op, exc.__class__.__name__,
            )
        self._degraded = True

    def _guarded(self, op: str, live: Callable[[], T], fallback: Callable[[], T]) -> T:
        """Run *live*; on backend unavailability degrade and run *fallback*."""
        if self._degraded:
            return fallback()
        try:
            return live()
        except _UNAVAILABLE as exc:
            self._degrade(op, BackendUnavailable(str(exc)))
            return fallback()

    # -------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------
    def list_all(self) -> list[MemeRecord]:
        def live() -> list[MemeRecord]:
            with Session(self._engine) as session:
                rows = session.scalars(
                    select(Meme).order_by(Meme.created_at.desc())
                ).all()
                return [_to_record(r) for r in rows]

        return self._guarded("list_all", live, self._mirror.list_all)

    def create(self, title, image_url=None, tags=None) -> MemeRecord:
        record = self.build_record(title, image_url, tags)

        def live() -> MemeRecord:
            with get_session(self._engine) as session:
                session.add(Meme(
                    id=record.id,
                    title=record.title,
                    image_url=record.image_url,
                    tags=list(record.tags),
                    owner_id=record.owner_id,
                    upvotes=0,
                    downvotes=0,
                    highest_bid=0,
                    highest_bidder="",
                    caption="",
                    vibe="",
                    created_at=record.created_at,
                ))
            self._mirror.put(record)
            return record.copy()

        def fallback() -> MemeRecord:
            self._mirror.put(record)
            return record.copy()

        return self._guarded("create", live, fallback)

    def get(self, meme_id: str) -> MemeRecord:
        def live() -> MemeRecord:
            with Session(self._engine) as session:
                row = session.get(Meme, meme_id)
                if row is None:
                    raise NotFound(meme_id)
                return _to_record(row)

        return self._guarded("get", live, lambda: self._mirror.get(meme_id))

    def increment_vote(self, meme_id: str, direction: VoteType) -> int:
        direction = VoteType(direction)
        column = getattr(Meme, direction.counter)

        def live() -> int:
            with get_session(self._engine) as session:
                # Single UPDATE … RETURNING: the increment happens in the DB,
                # so concurrent votes cannot overwrite each other.
                new_value = session.execute(
                    update(Meme)
                    .where(Meme.id == meme_id)
                    .values({direction.counter: column + 1})
                    .returning(column)
                ).scalar_one_or_none()
                if new_value is None:
                    raise NotFound(meme_id)
            self._mirror.mirror_counter(meme_id, direction.counter, new_value)
            return new_value

        return self._guarded(
            "increment_vote", live,
            lambda: self._mirror.increment_vote(meme_id, direction),
        )

    def apply_bid(self, meme_id: str, credits: int, user_id: str) -> tuple[BidRecord, MemeRecord]:
        def live() -> tuple[BidRecord, MemeRecord]:
            with get_session(self._engine) as session:
                updated = session.execute(
                    update(Meme)
                    .where(Meme.id == meme_id)
                    .values(highest_bid=credits, highest_bidder=user_id)
                    .returning(Meme.id)
                ).scalar_one_or_none()
                if updated is None:
                    raise NotFound(meme_id)
                bid = Bid(meme_id=meme_id, user_id=user_id, credits=credits)
                session.add(bid)
                session.flush()
                accepted = _to_bid(bid)
                seq = bid.id
                # Read inside the transaction that holds the row lock.
                snapshot = _to_record(session.get(Meme, meme_id))
            self._mirror.mirror_bid(accepted, seq)
            return accepted, snapshot

        return self._guarded(
            "apply_bid", live,
            lambda: self._mirror.apply_bid(meme_id, credits, user_id),
        )

    def set_field(self, meme_id: str, field: str, value: str) -> None:
        self.check_field(field, value)

        def live() -> None:
            with get_session(self._engine) as session:
                updated = session.execute(
                    update(Meme)
                    .where(Meme.id == meme_id)
                    .values({field: value})
                    .returning(Meme.id)
                ).scalar_one_or_none()
            if updated is None:
                logger.warning("set_field(%s) skipped — meme %s no longer exists", field, meme_id)
                return
            self._mirror.set_field(meme_id, field, value)

        self._guarded("set_field", live, lambda: self._mirror.set_field(meme_id, field, value))

    def list_bids(self, meme_id: str) -> list[BidRecord]:
        def live() -> list[BidRecord]:
            with Session(self._engine) as session:
                if session.get(Meme, meme_id) is None:
                    raise NotFound(meme_id)
                rows = session.scalars(
                    select(Bid)
                    .where(Bid.meme_id == meme_id)
                    .order_by(Bid.created_at, Bid.id)
                ).all()
                return [_to_bid(r) for r in rows]

        return self._guarded("list_bids", live, lambda: self._mirror.list_bids(meme_id))
