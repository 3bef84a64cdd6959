"""
memehustle.services.meme_service — Mutation API
================================================

Backend-agnostic request handling.  Every operation:

1. validates its input (:class:`~memehustle.errors.ValidationError`),
2. runs the store call on a worker thread via :func:`run_db`,
3. invalidates the leaderboard where needed,
4. publishes the broadcast event,
5. returns the result for the HTTP response.

Creating a meme also spawns two independent enrichment tasks (caption and
vibe).  Each one writes its field and publishes its own ``meme_updated``
when done; neither blocks the create response or the other task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from memehustle.constants import EnrichmentKind, VoteType
from memehustle.database.engine import run_db
from memehustle.engine import events
from memehustle.engine.cache import LeaderboardCache
from memehustle.engine.records import BidRecord, MemeRecord
from memehustle.errors import ValidationError
from memehustle.services.broadcast import BroadcastHub
from memehustle.services.enrichment_service import EnrichmentService
from memehustle.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _require_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required")
    return title.strip()


def _check_tags(tags: Any) -> list[str] | None:
    if tags is None:
        return None
    if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("tags must be a list of strings")
    return list(tags)


def _parse_vote(vote_type: Any) -> VoteType:
    try:
        return VoteType(vote_type)
    except ValueError:
        raise ValidationError("type must be 'up' or 'down'") from None


def _require_credits(credits: Any) -> int:
    # bool is an int subclass; True is not a bid.
    if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
        raise ValidationError("credits must be a positive integer")
    return credits


class MemeService:
    """The mutation surface shared by the REST routes.

    Usage::

        service = MemeService(store, enrichment, leaderboard, hub)
        record = await service.create_meme("Doge HODL", tags=["crypto"])
        await service.vote(record.id, "up")
    """

    def __init__(
        self,
        store: RecordStore,
        enrichment: EnrichmentService,
        leaderboard: LeaderboardCache,
        hub: BroadcastHub,
        *,
        default_top: int = 10,
    ) -> None:
        self.store = store
        self.enrichment = enrichment
        self.leaderboard_cache = leaderboard
        self.hub = hub
        self.default_top = default_top
        self._tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    async def list_memes(self) -> list[MemeRecord]:
        return await run_db(self.store.list_all)

    async def get_meme(self, meme_id: str) -> MemeRecord:
        return await run_db(self.store.get, meme_id)

    async def list_bids(self, meme_id: str) -> list[BidRecord]:
        return await run_db(self.store.list_bids, meme_id)

    async def leaderboard(self, top: int | None = None) -> list[MemeRecord]:
        n = self.default_top if top is None else top
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValidationError("top must be a positive integer")
        return await run_db(self.leaderboard_cache.top, n)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def create_meme(
        self,
        title: Any,
        image_url: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> MemeRecord:
        title = _require_title(title)
        tags = _check_tags(tags)
        if image_url is not None and not isinstance(image_url, str):
            raise ValidationError("image_url must be a string")

        record = await run_db(self.store.create, title, image_url, tags)
        logger.info("Meme %s created by %s: %r", record.id, record.owner_id, record.title)

        self.hub.publish(events.new_meme(record))
        self._spawn_enrichment(record)
        return record

    async def vote(self, meme_id: str, vote_type: Any) -> dict[str, Any]:
        direction = _parse_vote(vote_type)
        new_value = await run_db(self.store.increment_vote, meme_id, direction)
        self.leaderboard_cache.invalidate()
        self.hub.publish(events.vote_update(meme_id, direction, new_value))
        return {"meme_id": meme_id, "type": direction.value, "new_value": new_value}

    async def bid(self, meme_id: str, credits: Any) -> BidRecord:
        credits = _require_credits(credits)
        user_id = self.store.pick_user()
        # Last write wins: a lower bid replaces a higher one.
        accepted, record = await run_db(self.store.apply_bid, meme_id, credits, user_id)
        logger.info("Bid of %d on meme %s by %s", credits, meme_id, user_id)
        self.hub.publish(events.new_bid(accepted, record))
        return accepted

    async def regenerate_caption(self, meme_id: str) -> str:
        record = await run_db(self.store.get, meme_id)
        caption = await self.enrichment.generate(
            EnrichmentKind.CAPTION, record.title, record.tags
        )
        await run_db(self.store.set_field, meme_id, EnrichmentKind.CAPTION.value, caption)
        self.hub.publish(events.meme_updated(meme_id, caption=caption))
        return caption

    # -------------------------------------------------------------------
    # Enrichment continuations
    # -------------------------------------------------------------------
    def _spawn_enrichment(self, record: MemeRecord) -> None:
        for kind in EnrichmentKind:
            task = asyncio.create_task(
                self._enrich(record.id, kind, record.title, list(record.tags)),
                name=f"enrich-{kind}-{record.id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _enrich(
        self, meme_id: str, kind: EnrichmentKind, title: str, tags: list[str]
    ) -> None:
        try:
            value = await self.enrichment.generate(kind, title, tags)
            await run_db(self.store.set_field, meme_id, kind.value, value)
        except Exception:
            logger.exception("Enrichment %s failed for meme %s", kind, meme_id)
            return
        self.hub.publish(events.meme_updated(meme_id, **{kind.value: value}))

    @property
    def pending_enrichments(self) -> int:
        return len(self._tasks)

    async def wait_for_enrichment(self) -> None:
        """Block until every in-flight enrichment task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding enrichment tasks (shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending enrichment tasks", len(tasks))

    # -------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------
    def health(self) -> dict[str, Any]:
        if self.store.mode == "live":
            store_state = "degraded (in-memory mirror)" if self.store.degraded else "connected"
        else:
            store_state = "in-memory"
        provider = self.enrichment.provider_name
        return {
            "status": "ok",
            "mode": "live" if self.store.mode == "live" and not self.store.degraded else "demo",
            "store": store_state,
            "enrichment": f"{provider} connected" if provider else "fallback",
            "leaderboard_cache": "enabled" if self.leaderboard_cache.enabled else "bypassed",
            "subscribers": self.hub.subscriber_count,
            "pending_enrichments": self.pending_enrichments,
            "timestamp": datetime.now(UTC).isoformat(),
        }
