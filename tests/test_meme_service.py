"""
tests/test_meme_service.py — Mutation API
==========================================

Validation, broadcast side effects and the enrichment continuations, with
the in-memory store and a fake text provider.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from conftest import FakeProvider, run_async

from memehustle.config import DEFAULT_USER_POOL
from memehustle.constants import FALLBACK_CAPTIONS
from memehustle.errors import NotFound, ValidationError
from memehustle.services.sql_store import SqlRecordStore


def _drain(sub) -> list[dict]:
    messages = []
    while not sub.queue.empty():
        messages.append(sub.queue.get_nowait())
    return messages


# ===========================================================================
# Create + enrichment
# ===========================================================================
class TestCreate:
    def test_create_broadcasts_then_enriches(self, make_service):
        service = make_service(provider=FakeProvider())

        async def _inner():
            sub = service.hub.subscribe()
            record = await service.create_meme("Doge HODL", tags=["crypto"])
            first = _drain(sub)
            await service.wait_for_enrichment()
            return record, first, _drain(sub)

        record, first, later = run_async(_inner())
        assert [m["event"] for m in first] == ["new_meme"]
        assert first[0]["data"]["caption"] == ""
        assert {m["event"] for m in later} == {"meme_updated"}
        updated = {k: v for m in later for k, v in m["data"].items() if k != "id"}
        assert set(updated) == {"caption", "vibe"}
        assert all(value for value in updated.values())

        stored = service.store.get(record.id)
        assert stored.caption == updated["caption"]
        assert stored.vibe == updated["vibe"]

    def test_create_returns_before_enrichment(self, make_service):
        gate = asyncio.Event()

        class GatedProvider:
            name = "gated"

            async def generate(self, prompt: str) -> str:
                await gate.wait()
                return "late caption"

        service = make_service(provider=GatedProvider())

        async def _inner():
            record = await service.create_meme("Slow AI")
            pending = service.pending_enrichments
            gate.set()
            await service.wait_for_enrichment()
            return record, pending

        record, pending = run_async(_inner())
        assert record.caption == ""
        assert pending == 2
        assert service.store.get(record.id).caption == "late caption"

    def test_long_enrichment_stored_in_full(self, make_service, db_engine, rng):
        vibe = " ".join(["Retro Neon Glitchcore"] * 7)

        class VerboseProvider:
            name = "verbose"

            async def generate(self, prompt: str) -> str:
                return vibe

        store = SqlRecordStore(db_engine, rng=rng)
        assert store.warm()
        service = make_service(store=store, provider=VerboseProvider())

        async def _inner():
            sub = service.hub.subscribe()
            record = await service.create_meme("Wordy AI")
            await service.wait_for_enrichment()
            return record, _drain(sub)

        record, messages = run_async(_inner())
        assert len(vibe) > 150
        updated = [m["data"] for m in messages if m["event"] == "meme_updated"]
        assert {"id": record.id, "vibe": vibe} in updated
        assert store.get(record.id).vibe == vibe
        assert store.degraded is False

    @pytest.mark.parametrize("title", [None, "", "   ", 42])
    def test_title_required(self, service, title):
        with pytest.raises(ValidationError, match="title"):
            run_async(service.create_meme(title))

    def test_tags_must_be_strings(self, service):
        with pytest.raises(ValidationError, match="tags"):
            run_async(service.create_meme("ok", tags=[1, 2]))

    def test_enrichment_failure_is_logged_not_raised(self, service, caplog):
        async def _inner():
            with patch.object(service.store, "set_field", side_effect=RuntimeError("disk on fire")):
                await service.create_meme("Doomed")
                await service.wait_for_enrichment()

        run_async(_inner())
        assert "Enrichment" in caplog.text

    def test_aclose_cancels_pending(self, make_service):
        class NeverProvider:
            name = "never"

            async def generate(self, prompt: str) -> str:
                await asyncio.sleep(60)
                return "never"

        service = make_service(provider=NeverProvider())
        service.enrichment._timeout = 120

        async def _inner():
            await service.create_meme("Stuck")
            await asyncio.sleep(0)
            await service.aclose()
            return service.pending_enrichments

        assert run_async(_inner()) == 0


# ===========================================================================
# Votes
# ===========================================================================
class TestVote:
    def test_vote_returns_and_broadcasts_new_value(self, service):
        async def _inner():
            sub = service.hub.subscribe()
            result = await service.vote("1", "up")
            return result, _drain(sub)

        result, messages = run_async(_inner())
        assert result == {"meme_id": "1", "type": "up", "new_value": 70}
        assert messages == [{"event": "vote_update", "data": result}]

    def test_vote_invalidates_leaderboard(self, service):
        with patch.object(service.leaderboard_cache, "invalidate") as invalidate:
            run_async(service.vote("1", "down"))
        invalidate.assert_called_once()

    @pytest.mark.parametrize("vote_type", [None, "", "sideways", "UP"])
    def test_bad_type(self, service, vote_type):
        with pytest.raises(ValidationError, match="type"):
            run_async(service.vote("1", vote_type))

    def test_unknown_meme_no_broadcast(self, service):
        async def _inner():
            sub = service.hub.subscribe()
            with pytest.raises(NotFound):
                await service.vote("missing", "up")
            return _drain(sub)

        assert run_async(_inner()) == []

    def test_concurrent_votes(self, service):
        async def _inner():
            await asyncio.gather(*(service.vote("2", "up") for _ in range(30)))

        run_async(_inner())
        assert service.store.get("2").upvotes == 42 + 30


# ===========================================================================
# Bids
# ===========================================================================
class TestBid:
    def test_bid_broadcasts_with_record(self, service):
        async def _inner():
            sub = service.hub.subscribe()
            accepted = await service.bid("3", 50)
            return accepted, _drain(sub)

        accepted, messages = run_async(_inner())
        assert accepted.credits == 50
        assert accepted.user_id in DEFAULT_USER_POOL
        data = messages[0]["data"]
        assert messages[0]["event"] == "new_bid"
        assert data["meme"]["highest_bid"] == 50
        assert data["meme"]["highest_bidder"] == accepted.user_id

    def test_bid_snapshot_comes_from_the_bid_itself(self, service):
        async def _inner():
            sub = service.hub.subscribe()
            with patch.object(service.store, "get", side_effect=AssertionError("extra read")):
                accepted = await service.bid("3", 75)
            return accepted, _drain(sub)

        accepted, messages = run_async(_inner())
        data = messages[0]["data"]
        assert (data["credits"], data["user_id"]) == (75, accepted.user_id)
        assert (data["meme"]["highest_bid"], data["meme"]["highest_bidder"]) == (75, accepted.user_id)

    def test_lower_bid_overwrites(self, service):
        run_async(service.bid("3", 50))
        run_async(service.bid("3", 30))
        assert service.store.get("3").highest_bid == 30

    @pytest.mark.parametrize("credits", [None, 0, -5, True, "10", 2.5])
    def test_bad_credits(self, service, credits):
        with pytest.raises(ValidationError, match="credits"):
            run_async(service.bid("3", credits))

    def test_unknown_meme(self, service):
        with pytest.raises(NotFound):
            run_async(service.bid("missing", 10))


# ===========================================================================
# Leaderboard, caption, health
# ===========================================================================
class TestMisc:
    def test_leaderboard_default_and_explicit(self, service):
        assert len(run_async(service.leaderboard())) == 5
        top = run_async(service.leaderboard(2))
        assert [r.upvotes for r in top] == [156, 128]

    @pytest.mark.parametrize("top", [0, -1, True])
    def test_leaderboard_bad_top(self, service, top):
        with pytest.raises(ValidationError):
            run_async(service.leaderboard(top))

    def test_regenerate_caption_is_memoized(self, service):
        async def _inner():
            sub = service.hub.subscribe()
            first = await service.regenerate_caption("4")
            second = await service.regenerate_caption("4")
            return first, second, _drain(sub)

        first, second, messages = run_async(_inner())
        assert first == second
        assert first in FALLBACK_CAPTIONS
        assert messages[-1] == {"event": "meme_updated", "data": {"id": "4", "caption": first}}
        assert service.store.get("4").caption == first

    def test_regenerate_unknown(self, service):
        with pytest.raises(NotFound):
            run_async(service.regenerate_caption("missing"))

    def test_health_in_demo_mode(self, service):
        health = service.health()
        assert health["status"] == "ok"
        assert health["mode"] == "demo"
        assert health["store"] == "in-memory"
        assert health["enrichment"] == "fallback"
        assert health["leaderboard_cache"] == "bypassed"
