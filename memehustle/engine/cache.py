"""
memehustle.engine.cache — Leaderboard Cache
============================================

Short-TTL cache over the upvote ranking.  The full ranking is cached and
sliced per request, so ``top(3)`` and ``top(10)`` share one computation.

Invalidation:
  * TTL expiry (30 s by default), measured from the last computation.
  * :meth:`LeaderboardCache.invalidate` — called after every successful vote.

When the store is in demo mode or degraded the cache is bypassed and the
ranking is recomputed on every call.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from memehustle.engine.records import MemeRecord

if TYPE_CHECKING:
    from memehustle.services.record_store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0


def rank_by_upvotes(records: list[MemeRecord]) -> list[MemeRecord]:
    """Sort by upvotes descending; ties keep their listing order."""
    # sorted() is stable, and reverse=True preserves the order of equal keys.
    return sorted(records, key=lambda r: r.upvotes, reverse=True)


class LeaderboardCache:
    """Thread-safe TTL cache for the top-N ranking.

    Usage:
        leaderboard = LeaderboardCache(store, ttl=30)
        top = leaderboard.top(10)
        leaderboard.invalidate()      # after a vote
    """

    def __init__(
        self,
        store: RecordStore,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._ranking: list[MemeRecord] | None = None
        self._computed_at: float = 0.0
        # Bumped on invalidate so a computation racing a vote is not stored.
        self._generation = 0

    @property
    def enabled(self) -> bool:
        """False in demo/degraded mode — every call recomputes."""
        return self._store.mode == "live" and not self._store.degraded

    @property
    def is_warm(self) -> bool:
        with self._lock:
            return self._ranking is not None and self._fresh()

    def _fresh(self) -> bool:
        return self._clock() - self._computed_at < self._ttl

    def top(self, n: int) -> list[MemeRecord]:
        """Return at most *n* records ranked by upvotes."""
        if n < 1:
            raise ValueError("n must be >= 1")

        if not self.enabled:
            return rank_by_upvotes(self._store.list_all())[:n]

        with self._lock:
            if self._ranking is not None and self._fresh():
                return [r.copy() for r in self._ranking[:n]]
            generation = self._generation

        ranking = rank_by_upvotes(self._store.list_all())
        with self._lock:
            if generation == self._generation:
                self._ranking = ranking
                self._computed_at = self._clock()
        logger.debug("Leaderboard recomputed (%d records)", len(ranking))
        return [r.copy() for r in ranking[:n]]

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            self._ranking = None
            self._computed_at = 0.0

    def clear(self) -> None:
        """Drop cached state at shutdown."""
        self.invalidate()
