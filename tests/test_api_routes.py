"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================

Drives the REST surface and the ``/ws`` broadcast channel through the
FastAPI TestClient.  Covers:
- status codes and the ``{"error": ...}`` body for 400 / 404 / 500
- health reporting
- end-to-end create → ``new_meme`` → ``meme_updated`` over the socket
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from memehustle.constants import FALLBACK_CAPTIONS, FALLBACK_VIBES


def _next_events(ws, count: int) -> list[dict]:
    return [ws.receive_json() for _ in range(count)]


# ===========================================================================
# Health
# ===========================================================================
class TestHealthEndpoint:
    def test_health_reports_demo_mode(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["mode"] == "demo"
        assert "timestamp" in body


# ===========================================================================
# Memes
# ===========================================================================
class TestMemes:
    def test_list_seeded(self, client):
        resp = client.get("/api/memes")
        assert resp.status_code == 200
        assert [m["id"] for m in resp.json()] == ["1", "2", "3", "4", "5"]

    def test_create_returns_defaults(self, client):
        resp = client.post("/api/memes", json={"title": "Doge HODL"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["tags"] == ["meme", "crypto"]
        assert body["upvotes"] == 0
        assert body["caption"] == ""
        assert client.get("/api/memes").json()[0]["id"] == body["id"]

    @pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}])
    def test_create_requires_title(self, client, payload):
        resp = client.post("/api/memes", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": "title is required"}

    def test_malformed_body_is_400(self, client):
        resp = client.post("/api/memes", json={"title": "x", "tags": "not-a-list"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"

    def test_get_unknown(self, client):
        resp = client.get("/api/memes/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Meme not found"}


# ===========================================================================
# Votes, bids, caption
# ===========================================================================
class TestMutations:
    def test_vote(self, client):
        resp = client.post("/api/memes/1/vote", json={"type": "up"})
        assert resp.status_code == 200
        assert resp.json() == {"meme_id": "1", "type": "up", "new_value": 70}

    @pytest.mark.parametrize("payload", [{}, {"type": "sideways"}])
    def test_vote_bad_type(self, client, payload):
        resp = client.post("/api/memes/1/vote", json=payload)
        assert resp.status_code == 400
        assert "type" in resp.json()["error"]

    def test_vote_unknown(self, client):
        resp = client.post("/api/memes/missing/vote", json={"type": "down"})
        assert resp.status_code == 404

    def test_bid(self, client):
        resp = client.post("/api/memes/2/bid", json={"credits": 50})
        assert resp.status_code == 200
        assert resp.json()["credits"] == 50
        client.post("/api/memes/2/bid", json={"credits": 30})
        assert client.get("/api/memes/2").json()["highest_bid"] == 30
        history = client.get("/api/memes/2/bids").json()
        assert [b["credits"] for b in history] == [50, 30]

    @pytest.mark.parametrize("payload", [{}, {"credits": 0}, {"credits": -1}])
    def test_bid_invalid(self, client, payload):
        resp = client.post("/api/memes/2/bid", json=payload)
        assert resp.status_code == 400
        assert "credits" in resp.json()["error"]

    def test_bid_non_integer(self, client):
        resp = client.post("/api/memes/2/bid", json={"credits": "lots"})
        assert resp.status_code == 400

    def test_bid_unknown(self, client):
        assert client.post("/api/memes/missing/bid", json={"credits": 5}).status_code == 404

    def test_regenerate_caption(self, client):
        resp = client.post("/api/memes/3/caption")
        assert resp.status_code == 200
        assert resp.json()["caption"] in FALLBACK_CAPTIONS


# ===========================================================================
# Leaderboard
# ===========================================================================
class TestLeaderboard:
    def test_top_two(self, client):
        resp = client.get("/api/leaderboard", params={"top": 2})
        assert [m["upvotes"] for m in resp.json()] == [156, 128]

    def test_default_size(self, client):
        assert len(client.get("/api/leaderboard").json()) == 5

    @pytest.mark.parametrize("top", ["0", "-3", "abc"])
    def test_bad_top(self, client, top):
        assert client.get("/api/leaderboard", params={"top": top}).status_code == 400


# ===========================================================================
# Unexpected failures
# ===========================================================================
class TestInternalErrors:
    def test_unexpected_exception_is_500(self, client, service):
        with patch.object(service.store, "list_all", side_effect=RuntimeError("kaboom")):
            resp = client.get("/api/memes")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


# ===========================================================================
# WebSocket
# ===========================================================================
class TestRealtime:
    def test_create_then_enrichment_events(self, client):
        with client.websocket_connect("/ws") as ws:
            created = client.post("/api/memes", json={"title": "Live Doge", "tags": ["doge"]}).json()
            first = ws.receive_json()
            assert first["event"] == "new_meme"
            assert first["data"]["id"] == created["id"]

            updates = _next_events(ws, 2)
            assert {u["event"] for u in updates} == {"meme_updated"}
            merged = {k: v for u in updates for k, v in u["data"].items()}
            assert merged["id"] == created["id"]
            assert merged["caption"] in FALLBACK_CAPTIONS
            assert merged["vibe"] in FALLBACK_VIBES

    def test_vote_is_broadcast(self, client):
        with client.websocket_connect("/ws") as ws:
            client.post("/api/memes/5/vote", json={"type": "down"})
            assert ws.receive_json() == {
                "event": "vote_update",
                "data": {"meme_id": "5", "type": "down", "new_value": 8},
            }

    def test_join_room_acknowledged(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"event": "join_room", "room": "lobby"})
            assert ws.receive_json() == {"event": "room_joined", "data": {"room": "lobby"}}

    def test_subscriber_count_in_health(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "join_room", "room": "lobby"})
            ws.receive_json()
            assert client.get("/api/health").json()["subscribers"] == 1
