"""
memehustle.services.broadcast — Fan-out to connected clients
=============================================================

Each connected client owns a :class:`Subscription` with a bounded
``asyncio.Queue``.  :meth:`BroadcastHub.publish` drops the event into every
queue with ``put_nowait`` and returns immediately:

- no subscribers → nothing happens (not an error);
- a full queue (slow client) → the event is dropped for that client only;
- no replay — a late joiner re-syncs with ``GET /api/memes``.

The WebSocket route drains a subscription's queue onto its socket.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any

from memehustle.engine.events import MemeEvent

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

_ids = itertools.count(1)


@dataclass(eq=False)
class Subscription:
    """One connected client."""

    queue: asyncio.Queue[dict[str, Any] | None]
    id: int = field(default_factory=lambda: next(_ids))
    rooms: set[str] = field(default_factory=set)
    dropped: int = 0

    async def next_message(self) -> dict[str, Any] | None:
        """Wait for the next message; ``None`` means the hub closed."""
        return await self.queue.get()


class BroadcastHub:
    """In-process publish/subscribe hub for :class:`MemeEvent` objects."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscriptions: set[Subscription] = set()
        self.published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        sub = Subscription(queue=asyncio.Queue(maxsize=self._queue_size))
        self._subscriptions.add(sub)
        logger.info("Client %d connected (%d online)", sub.id, len(self._subscriptions))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.discard(sub)
            logger.info("Client %d disconnected (%d online)", sub.id, len(self._subscriptions))

    def join(self, sub: Subscription, room: str) -> None:
        """Record room membership.  Broadcasts are not scoped by room."""
        sub.rooms.add(room)
        logger.debug("Client %d joined room %s", sub.id, room)

    def publish(self, event: MemeEvent) -> int:
        """Fan *event* out to every subscriber; return how many accepted it."""
        message = event.to_message()
        delivered = 0
        for sub in list(self._subscriptions):
            try:
                sub.queue.put_nowait(message)
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    "Client %d queue full — dropped %s (%d dropped so far)",
                    sub.id, event.kind, sub.dropped,
                )
                continue
            delivered += 1
        self.published += 1
        logger.debug("Published %s to %d subscribers", event.kind, delivered)
        return delivered

    def close(self) -> None:
        """Wake every subscriber with the end-of-stream marker."""
        for sub in list(self._subscriptions):
            while True:
                try:
                    sub.queue.put_nowait(None)
                    break
                except asyncio.QueueFull:
                    sub.queue.get_nowait()
        self._subscriptions.clear()
