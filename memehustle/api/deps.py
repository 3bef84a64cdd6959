"""
memehustle.api.deps — Component wiring & FastAPI dependencies
==============================================================

:func:`build_service` is the one place where the demo/live choice is made.
Everything downstream receives a ready :class:`MemeService` and never asks
which backend it is talking to.
"""

from __future__ import annotations

import logging
import random

from fastapi import Request, WebSocket

from memehustle.config import MemeHustleConfig
from memehustle.database.engine import create_db_engine
from memehustle.database.seed import demo_records
from memehustle.engine.cache import LeaderboardCache
from memehustle.services.broadcast import BroadcastHub
from memehustle.services.enrichment_service import EnrichmentService, GeminiTextProvider
from memehustle.services.meme_service import MemeService
from memehustle.services.record_store import InMemoryRecordStore, RecordStore
from memehustle.services.sql_store import SqlRecordStore

logger = logging.getLogger(__name__)


def build_store(cfg: MemeHustleConfig, rng: random.Random) -> RecordStore:
    """Pick the record store once, at startup."""
    mirror = InMemoryRecordStore(cfg.user_pool, rng)
    if not cfg.live_store:
        if cfg.seed_demo_data:
            mirror.seed(demo_records())
        return mirror

    store = SqlRecordStore(
        create_db_engine(cfg.database_url),
        mirror=mirror,
        user_pool=cfg.user_pool,
        rng=rng,
    )
    if not store.warm() and cfg.seed_demo_data:
        mirror.seed(demo_records())
    return store


def build_service(cfg: MemeHustleConfig) -> MemeService:
    """Construct every stateful component for one process lifetime."""
    rng = random.Random()
    store = build_store(cfg, rng)

    provider = None
    if cfg.live_enrichment:
        provider = GeminiTextProvider(cfg.gemini_api_key, cfg.gemini_model)

    return MemeService(
        store,
        EnrichmentService(provider, timeout=cfg.enrichment_timeout_seconds, rng=rng),
        LeaderboardCache(store, ttl=cfg.leaderboard_ttl_seconds),
        BroadcastHub(cfg.subscriber_queue_size),
        default_top=cfg.leaderboard_default_size,
    )


async def shutdown_service(service: MemeService) -> None:
    """Tear down in reverse order of construction."""
    await service.aclose()
    service.hub.close()
    await service.enrichment.aclose()
    service.leaderboard_cache.clear()
    service.store.close()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_service(request: Request) -> MemeService:
    return request.app.state.service


def get_ws_service(websocket: WebSocket) -> MemeService:
    return websocket.app.state.service
