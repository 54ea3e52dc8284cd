# chatrelay/api/websocket.py

from __future__ import annotations

import json
import logging
from typing import Optional, Union

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from chatrelay.core.exceptions import MalformedPayload
from chatrelay.models.models import (
    CLIENT_EVENT_TYPES,
    DisconnectEvent,
    JoinEvent,
    MessageEvent,
    inbound_event_adapter,
)
from chatrelay.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def decode_event(raw: Union[str, bytes]) -> Optional[Union[JoinEvent, MessageEvent]]:
    """
    Decode one inbound frame into a typed event.

    Returns:
        The event, or None when the frame carries a ``type`` this server
        does not handle (logged and ignored).

    Raises:
        MalformedPayload: invalid UTF-8 / JSON, not an object, missing
                          ``type`` or fields of the wrong shape
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or "type" not in data:
        raise MalformedPayload("Event must be an object with a 'type' field")

    if data["type"] not in CLIENT_EVENT_TYPES:
        logger.warning("❓ Unknown event type: %r", data["type"])
        return None

    try:
        return inbound_event_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedPayload(f"Invalid {data['type']} event: {e.error_count()} error(s)") from e


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/")
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for room chat.

    Protocol:
    =========

    Client -> Server:
        {"type": "join", "username": "alice", "room": "general"}
        {"type": "message", "message": "hi"}

    Server -> Client:
        {"type": "message", "username": "alice", "message": "hi", "timestamp": "..."}
        {"type": "system", "message": "alice joined the chat", "timestamp": "..."}
        {"type": "userList", "users": ["alice", "bob"]}

    Lifecycle:
    ==========
    1. Connection accepted, session tracked (no room yet)
    2. "join" puts the session in a room (history replay, announcement, user list)
    3. "message" is stored in history and echoed to the whole room
    4. On close or transport error the session leaves its room

    Error Handling:
        - Malformed frames and unknown types: logged, dropped, connection stays open
        - Unknown room / message before join: logged, dropped
        - Nothing is sent back to the client for dropped events
    """
    manager: ConnectionManager = websocket.app.state.connection_manager
    session = await manager.connect(websocket)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break

            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""

            try:
                event = decode_event(raw)
            except MalformedPayload as e:
                logger.warning("Dropped inbound frame: %s", e)
                continue

            if event is None:
                continue

            logger.debug("📨 Event from client: %s", event.type)
            await manager.dispatch(session, event)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        await manager.dispatch(session, DisconnectEvent())
