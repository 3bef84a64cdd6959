"""
memehustle.client.view — Broadcast-driven local view
=====================================================

:class:`ClientView` keeps a local, newest-first copy of the meme list and
reconciles it with broadcast events:

- ``new_meme``      → prepend, unless the id is already known;
- ``vote_update``   → set the one counter to ``new_value``;
- ``new_bid``       → set ``highest_bid`` / ``highest_bidder``;
- ``meme_updated``  → overwrite only the fields present in the payload.

Events for ids the view has not loaded are ignored; the next :meth:`sync`
picks those records up.  User actions go straight to the server and never
touch local state — the resulting broadcast does, for the acting client
too.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable
from dataclasses import fields
from datetime import datetime
from typing import Any

from memehustle.client.api import MemeHustleClient
from memehustle.constants import VoteType
from memehustle.engine.cache import rank_by_upvotes
from memehustle.engine.events import EventKind
from memehustle.engine.records import MemeRecord

logger = logging.getLogger(__name__)

_RECORD_FIELDS = frozenset(f.name for f in fields(MemeRecord)) - {"id"}


class ClientView:
    """Local meme list kept in step with the server by broadcasts."""

    def __init__(self, api: MemeHustleClient | None = None) -> None:
        self._api = api
        self._records: list[MemeRecord] = []
        self._index: dict[str, MemeRecord] = {}
        self.rooms: set[str] = set()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def records(self) -> list[MemeRecord]:
        return [r.copy() for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, meme_id: object) -> bool:
        return meme_id in self._index

    def get(self, meme_id: str) -> MemeRecord | None:
        record = self._index.get(meme_id)
        return record.copy() if record is not None else None

    def leaderboard(self, n: int = 10) -> list[MemeRecord]:
        """Local ranking — same ordering rule as the server's leaderboard."""
        return [r.copy() for r in rank_by_upvotes(self._records)[:n]]

    # -------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------
    def seed(self, records: list[dict[str, Any]] | list[MemeRecord]) -> None:
        self._records = [
            r.copy() if isinstance(r, MemeRecord) else MemeRecord.from_dict(r)
            for r in records
        ]
        self._index = {r.id: r for r in self._records}

    async def sync(self) -> None:
        """Replace local state with ``GET /api/memes``."""
        if self._api is None:
            raise RuntimeError("ClientView has no API client to sync from")
        self.seed(await self._api.list_memes())
        logger.info("Client view synced — %d memes", len(self._records))

    # -------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------
    def apply(self, message: dict[str, Any] | str) -> bool:
        """Apply one broadcast message.  Returns True if local state changed."""
        if isinstance(message, str):
            message = json.loads(message)
        event = message.get("event")
        data = message.get("data") or {}

        if event == "room_joined":
            self.rooms.add(str(data.get("room")))
            return False

        try:
            kind = EventKind(event)
        except ValueError:
            logger.debug("Ignoring unknown event %r", event)
            return False

        if kind is EventKind.NEW_MEME:
            return self._on_new_meme(data)
        if kind is EventKind.VOTE_UPDATE:
            try:
                direction = VoteType(data.get("type"))
            except ValueError:
                logger.debug("Ignoring vote_update with type %r", data.get("type"))
                return False
            return self._merge(data.get("meme_id"), {direction.counter: data.get("new_value")})
        if kind is EventKind.NEW_BID:
            return self._merge(
                data.get("meme_id"),
                {"highest_bid": data.get("credits"), "highest_bidder": data.get("user_id")},
            )
        return self._merge(data.get("id"), {k: v for k, v in data.items() if k != "id"})

    async def listen(self, messages: AsyncIterable[dict[str, Any] | str]) -> None:
        """Apply every message from *messages* until it is exhausted."""
        async for message in messages:
            self.apply(message)

    def _on_new_meme(self, data: dict[str, Any]) -> bool:
        meme_id = str(data.get("id", ""))
        if not meme_id or meme_id in self._index:
            return False
        record = MemeRecord.from_dict(data)
        self._records.insert(0, record)
        self._index[record.id] = record
        return True

    def _merge(self, meme_id: Any, changes: dict[str, Any]) -> bool:
        record = self._index.get(str(meme_id)) if meme_id is not None else None
        if record is None:
            return False
        changed = False
        for name, value in changes.items():
            if name not in _RECORD_FIELDS or value is None:
                continue
            if name == "created_at" and isinstance(value, str):
                value = datetime.fromisoformat(value)
            if getattr(record, name) != value:
                setattr(record, name, value)
                changed = True
        return changed

    # -------------------------------------------------------------------
    # User actions (server-confirmed; no optimistic updates)
    # -------------------------------------------------------------------
    def _require_api(self) -> MemeHustleClient:
        if self._api is None:
            raise RuntimeError("ClientView has no API client")
        return self._api

    async def post_meme(self, title: str, image_url: str | None = None, tags: list[str] | None = None) -> dict[str, Any]:
        return await self._require_api().create_meme(title, image_url, tags)

    async def vote(self, meme_id: str, vote_type: str) -> dict[str, Any]:
        return await self._require_api().vote(meme_id, vote_type)

    async def bid(self, meme_id: str, credits: int) -> dict[str, Any]:
        return await self._require_api().bid(meme_id, credits)

    async def regenerate_caption(self, meme_id: str) -> str:
        return await self._require_api().regenerate_caption(meme_id)
