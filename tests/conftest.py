"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import random

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from memehustle.database.models import Base
from memehustle.database.seed import demo_records
from memehustle.engine.cache import LeaderboardCache
from memehustle.services.broadcast import BroadcastHub
from memehustle.services.enrichment_service import EnrichmentService
from memehustle.services.meme_service import MemeService
from memehustle.services.record_store import InMemoryRecordStore


def run_async(coro):
    """Run an async coroutine in a fresh event loop (no pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeProvider:
    """Text provider returning a new string on every call."""

    name = "fake"

    def __init__(self, prefix: str = "generated") -> None:
        self.prefix = prefix
        self.calls: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls.append(prompt)
        return f"{self.prefix} #{len(self.calls)}"


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with the memes/bids tables.

    StaticPool keeps one shared connection so worker threads started by
    ``run_db`` see the same database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def memory_store(rng) -> InMemoryRecordStore:
    """Demo-mode store seeded with the five demo memes."""
    store = InMemoryRecordStore(rng=rng)
    store.seed(demo_records())
    return store


@pytest.fixture
def make_service(rng):
    """Factory: build a MemeService around *store* with fallback enrichment."""

    def _make(store=None, provider=None, *, queue_size=100) -> MemeService:
        if store is None:
            store = InMemoryRecordStore(rng=rng)
            store.seed(demo_records())
        return MemeService(
            store,
            EnrichmentService(provider, timeout=1.0, rng=rng),
            LeaderboardCache(store, ttl=30),
            BroadcastHub(queue_size),
        )

    return _make


@pytest.fixture
def service(make_service) -> MemeService:
    return make_service()


@pytest.fixture
def client(service):
    """TestClient over an app wired to the ``service`` fixture.

    Entered as a context manager so the lifespan runs and background
    enrichment tasks share one event loop with the requests.
    """
    from fastapi.testclient import TestClient

    from memehustle.api.main import create_app

    app = create_app(service=service)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
