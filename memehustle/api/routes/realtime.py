"""
memehustle.api.routes.realtime — WebSocket broadcast endpoint
==============================================================

``/ws`` streams every broadcast event as ``{"event": ..., "data": ...}``.

Clients may send ``{"event": "join_room", "room": "<name>"}``; the server
records the room and answers ``room_joined``.  Rooms do not scope delivery.
Anything else the client sends is ignored.

Only the pump task writes to the socket: acknowledgements are queued on the
client's subscription like any other message.
"""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from memehustle.api.deps import get_ws_service
from memehustle.services.broadcast import Subscription
from memehustle.services.meme_service import MemeService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _pump(websocket: WebSocket, sub: Subscription) -> None:
    """Forward queued messages to the socket until the hub closes."""
    while True:
        message = await sub.next_message()
        if message is None:
            await websocket.close(code=1001)
            return
        await websocket.send_json(message)


def _handle_client_message(raw: str, sub: Subscription, service: MemeService) -> None:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Client %d sent non-JSON frame — ignored", sub.id)
        return
    if not isinstance(message, dict):
        return

    if message.get("event") == "join_room" and message.get("room"):
        room = str(message["room"])
        service.hub.join(sub, room)
        try:
            sub.queue.put_nowait({"event": "room_joined", "data": {"room": room}})
        except asyncio.QueueFull:
            sub.dropped += 1


@router.websocket("/ws")
async def realtime(websocket: WebSocket, service: MemeService = Depends(get_ws_service)):
    # Subscribe before accepting so nothing published after the handshake is missed.
    sub = service.hub.subscribe()
    await websocket.accept()
    pump = asyncio.create_task(_pump(websocket, sub), name=f"ws-pump-{sub.id}")
    try:
        while True:
            raw = await websocket.receive_text()
            _handle_client_message(raw, sub, service)
    except WebSocketDisconnect:
        pass
    finally:
        service.hub.unsubscribe(sub)
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
