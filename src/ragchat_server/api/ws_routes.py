"""
WebSocket Route

Real-time chat transport. Clients exchange JSON frames shaped
``{"event": <name>, "data": {...}}``.

Client → server
---------------
- ``join``: ``{convoId, user}`` → server replies ``history``
- ``send_message``: ``{convoId, message, sender}`` → ``new_message`` is
  broadcast to the conversation for the message and for the bot reply

Server → client (additionally)
------------------------------
- ``clear_history`` when documents are uploaded to the conversation
- ``error`` for malformed frames or failed processing
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from .dependencies import get_chat_service, get_hub
from .models import JoinPayload, SendMessagePayload
from ..chat.service import ChatService
from ..realtime.hub import ConnectionHub

logger = logging.getLogger("ragchat.realtime")

router = APIRouter(tags=["realtime"])


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


async def _handle_join(
    websocket: WebSocket,
    data: Dict[str, Any],
    hub: ConnectionHub,
    service: ChatService,
) -> Optional[str]:
    payload = JoinPayload.model_validate(data)
    user_id = payload.user or f"ws-{id(websocket)}"

    await hub.join(payload.convo_id, websocket)
    history = await service.join(payload.convo_id, user_id)
    await websocket.send_json(
        {"event": "history", "data": jsonable_encoder(history, by_alias=True)}
    )

    logger.info("User %s joined conversation %s", user_id, payload.convo_id)
    return user_id


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    hub: ConnectionHub = Depends(get_hub),
    service: ChatService = Depends(get_chat_service),
) -> None:
    await websocket.accept()
    user_id: Optional[str] = None

    try:
        while True:
            raw = await websocket.receive_text()

            try:
                frame = json.loads(raw)
                event = frame["event"]
                data = frame.get("data") or {}
            except (ValueError, KeyError, TypeError, AttributeError):
                await _send_error(websocket, "Malformed frame")
                continue

            try:
                if event == "join":
                    user_id = await _handle_join(websocket, data, hub, service)
                elif event == "send_message":
                    payload = SendMessagePayload.model_validate(data)
                    await service.handle_message(
                        payload.convo_id,
                        payload.message,
                        sender=payload.sender,
                        user_id=user_id or f"ws-{id(websocket)}",
                    )
                else:
                    await _send_error(websocket, f"Unknown event: {event}")
            except ValidationError:
                await _send_error(websocket, f"Invalid payload for {event}")
            except Exception:
                logger.exception("Failed to process %s event", event)
                await _send_error(websocket, "Failed to process message")

    except WebSocketDisconnect:
        logger.debug("Client disconnected")
    finally:
        await hub.leave(websocket)
