"""
Real-Time Connection Hub

Fans events out to every WebSocket that joined a conversation. Frames are
JSON objects of the form ``{"event": <name>, "data": <payload>}``.

Connections whose send fails are dropped from every room; a broken client
never fails the emitting request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger("ragchat.realtime")


class ConnectionHub:
    """
    Rooms of WebSocket connections keyed by conversation id.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def join(self, convo_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._rooms.setdefault(convo_id, set()).add(websocket)

    async def leave(self, websocket: WebSocket) -> None:
        """Remove a connection from every room it joined."""
        async with self._lock:
            for convo_id in list(self._rooms):
                members = self._rooms[convo_id]
                members.discard(websocket)
                if not members:
                    del self._rooms[convo_id]

    async def emit_to_conversation(
        self,
        convo_id: str,
        event: str,
        payload: Any = None,
    ) -> int:
        """
        Send one event to every connection in a conversation.

        Returns
        -------
        int
            Number of connections the event was delivered to.
        """
        async with self._lock:
            members: List[WebSocket] = list(self._rooms.get(convo_id, ()))

        frame = {"event": event, "data": jsonable_encoder(payload, by_alias=True)}
        delivered = 0
        dead: List[WebSocket] = []

        for websocket in members:
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Dropping connection in %s after failed send of %s: %s",
                    convo_id,
                    event,
                    exc,
                )
                dead.append(websocket)

        for websocket in dead:
            await self.leave(websocket)

        return delivered

    def room_size(self, convo_id: str) -> int:
        return len(self._rooms.get(convo_id, ()))
