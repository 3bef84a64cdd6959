"""
memehustle.services.record_store — Record Store interface + in-memory store
============================================================================

The Mutation API talks to exactly one :class:`RecordStore`, chosen once at
startup:

* :class:`InMemoryRecordStore` — demo mode, and the mirror the SQL store
  falls back to.
* :class:`~memehustle.services.sql_store.SqlRecordStore` — live mode.

Both are synchronous and thread-safe; async callers go through
:func:`memehustle.database.engine.run_db`.
"""

from __future__ import annotations

import abc
import logging
import random
import threading
import time
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from memehustle.config import DEFAULT_USER_POOL
from memehustle.constants import (
    DEFAULT_TAGS,
    ENRICHABLE_FIELDS,
    IMAGE_THEMES,
    PLACEHOLDER_IMAGE_URL,
    VoteType,
)
from memehustle.engine.records import BidRecord, MemeRecord, normalize_tags
from memehustle.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


class RecordStore(abc.ABC):
    """Canonical collection of meme records and bid history."""

    #: ``"demo"`` for in-process storage, ``"live"`` for a database.
    mode: str = "demo"

    def __init__(
        self,
        user_pool: Sequence[str] = DEFAULT_USER_POOL,
        rng: random.Random | None = None,
    ) -> None:
        if not user_pool:
            raise ValueError("user_pool must contain at least one identity")
        self._user_pool = tuple(user_pool)
        self._rng = rng or random.Random()

    @property
    def degraded(self) -> bool:
        """True while the store is serving from a fallback mirror."""
        return False

    # -------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------
    @abc.abstractmethod
    def list_all(self) -> list[MemeRecord]:
        """Return every record, newest first.  Must not raise."""

    @abc.abstractmethod
    def create(
        self,
        title: str,
        image_url: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> MemeRecord:
        """Insert a new record with defaults applied and return it."""

    @abc.abstractmethod
    def get(self, meme_id: str) -> MemeRecord:
        """Return the record for *meme_id* or raise :class:`NotFound`."""

    @abc.abstractmethod
    def increment_vote(self, meme_id: str, direction: VoteType) -> int:
        """Atomically add one to the counter for *direction*; return it."""

    @abc.abstractmethod
    def apply_bid(
        self, meme_id: str, credits: int, user_id: str
    ) -> tuple[BidRecord, MemeRecord]:
        """Overwrite highest_bid/highest_bidder and log the bid.

        Returns the accepted bid and the record as it stood right after it,
        taken in the same atomic step.
        """

    @abc.abstractmethod
    def set_field(self, meme_id: str, field: str, value: str) -> None:
        """Write an enrichment field.  A missing record is logged, not raised."""

    @abc.abstractmethod
    def list_bids(self, meme_id: str) -> list[BidRecord]:
        """Return the bid log for *meme_id*, oldest first."""

    def close(self) -> None:
        """Release backend resources at shutdown."""

    # -------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------
    def pick_user(self) -> str:
        """Draw an identity uniformly from the fixed pool."""
        return self._rng.choice(self._user_pool)

    def random_image_url(self) -> str:
        seed = f"{time.time_ns()}{self._rng.randrange(1000):03d}"
        return PLACEHOLDER_IMAGE_URL.format(seed=seed, theme=self._rng.choice(IMAGE_THEMES))

    def build_record(
        self,
        title: str,
        image_url: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> MemeRecord:
        """Apply creation defaults and assign id / owner / created_at."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("title is required")
        return MemeRecord(
            id=str(uuid.uuid4()),
            title=title,
            image_url=(image_url or "").strip() or self.random_image_url(),
            tags=normalize_tags(tags) or list(DEFAULT_TAGS),
            owner_id=self.pick_user(),
            created_at=datetime.now(UTC),
        )

    @staticmethod
    def check_field(field: str, value: str) -> None:
        if field not in ENRICHABLE_FIELDS:
            raise ValueError(
                f"Field '{field}' is not writable. Allowed: {sorted(ENRICHABLE_FIELDS)}"
            )
        # Enrichment fields only ever move from empty to non-empty.
        if not value:
            raise ValueError(f"Refusing to reset '{field}' to an empty value")


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------
class InMemoryRecordStore(RecordStore):
    """Thread-safe, ordered, process-local store.

    Records are kept newest-first; ``create`` inserts at the front.  Every
    read returns copies.
    """

    mode = "demo"

    def __init__(
        self,
        user_pool: Sequence[str] = DEFAULT_USER_POOL,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(user_pool, rng)
        self._lock = threading.Lock()
        self._records: list[MemeRecord] = []
        self._index: dict[str, MemeRecord] = {}
        self._bids: list[BidRecord] = []
        # Highest database bid id applied per meme (mirror use only).
        self._bid_seq: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def seed(self, records: Sequence[MemeRecord]) -> None:
        """Replace the contents with *records* (already in listing order)."""
        with self._lock:
            self._records = [r.copy() for r in records]
            self._index = {r.id: r for r in self._records}
            self._bids = []
            self._bid_seq = {}
        logger.info("In-memory store seeded with %d records", len(records))

    def put(self, record: MemeRecord) -> None:
        """Insert *record* at the front unless its id is already present."""
        with self._lock:
            if record.id in self._index:
                return
            fresh = record.copy()
            self._records.insert(0, fresh)
            self._index[fresh.id] = fresh

    # -------------------------------------------------------------------
    # Mirror writes (used by the SQL store)
    # -------------------------------------------------------------------
    # Committed database writes can reach the mirror out of order, so each
    # one touches only its own columns and never moves them backwards.
    def mirror_counter(self, meme_id: str, counter: str, value: int) -> None:
        """Raise *counter* to *value*; an older value is ignored."""
        with self._lock:
            record = self._index.get(meme_id)
            if record is None:
                logger.debug("Mirror has no meme %s; %s not mirrored", meme_id, counter)
                return
            if value > getattr(record, counter):
                setattr(record, counter, value)

    def mirror_bid(self, bid: BidRecord, seq: int) -> None:
        """Log *bid*; overwrite the highest pair only if *seq* is the newest."""
        with self._lock:
            record = self._index.get(bid.meme_id)
            if record is None:
                logger.debug("Mirror has no meme %s; bid not mirrored", bid.meme_id)
                return
            self._bids.append(bid)
            if seq > self._bid_seq.get(bid.meme_id, 0):
                self._bid_seq[bid.meme_id] = seq
                record.highest_bid = bid.credits
                record.highest_bidder = bid.user_id

    def list_all(self) -> list[MemeRecord]:
        with self._lock:
            return [r.copy() for r in self._records]

    def create(self, title, image_url=None, tags=None) -> MemeRecord:
        record = self.build_record(title, image_url, tags)
        with self._lock:
            self._records.insert(0, record)
            self._index[record.id] = record
            return record.copy()

    def get(self, meme_id: str) -> MemeRecord:
        with self._lock:
            record = self._index.get(meme_id)
            if record is None:
                raise NotFound(meme_id)
            return record.copy()

    def increment_vote(self, meme_id: str, direction: VoteType) -> int:
        direction = VoteType(direction)
        with self._lock:
            record = self._index.get(meme_id)
            if record is None:
                raise NotFound(meme_id)
            value = getattr(record, direction.counter) + 1
            setattr(record, direction.counter, value)
            return value

    def apply_bid(self, meme_id: str, credits: int, user_id: str) -> tuple[BidRecord, MemeRecord]:
        with self._lock:
            record = self._index.get(meme_id)
            if record is None:
                raise NotFound(meme_id)
            record.highest_bid = credits
            record.highest_bidder = user_id
            bid = BidRecord(meme_id=meme_id, user_id=user_id, credits=credits)
            self._bids.append(bid)
            return bid, record.copy()

    def set_field(self, meme_id: str, field: str, value: str) -> None:
        self.check_field(field, value)
        with self._lock:
            record = self._index.get(meme_id)
            if record is None:
                logger.warning("set_field(%s) skipped — meme %s no longer exists", field, meme_id)
                return
            setattr(record, field, value)

    def list_bids(self, meme_id: str) -> list[BidRecord]:
        with self._lock:
            if meme_id not in self._index:
                raise NotFound(meme_id)
            return [b for b in self._bids if b.meme_id == meme_id]
