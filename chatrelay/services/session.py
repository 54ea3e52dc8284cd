# chatrelay/services/session.py

from __future__ import annotations

import asyncio
from typing import Any, Optional

from fastapi.websockets import WebSocketState

DEFAULT_QUEUE_SIZE = 1000


class ChatSession:
    """
    Server-side state of one live client connection.

    Attributes:
        websocket: Transport handle, owned by the transport layer. Anything with
                   an async ``send_json`` / ``close`` and Starlette-style
                   ``client_state`` / ``application_state`` attributes works.
        username: Client-asserted name, set on join. May be None or empty.
        current_room: Name of the room the session is a member of, or None.
        outbox: Payloads waiting for this session's writer task, in send order.
        writer: Task draining ``outbox`` (started by the Broadcaster).
        failed: Set when a send errored, timed out or the outbox overflowed.
        disconnected: Terminal flag set by the lifecycle controller.

    Sessions hash by identity, so room membership sets are keyed by connection.
    """

    def __init__(self, websocket: Any, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.websocket = websocket
        self.username: Optional[str] = None
        self.current_room: Optional[str] = None
        self.outbox: asyncio.Queue[dict] = asyncio.Queue(maxsize=queue_size)
        self.writer: Optional[asyncio.Task] = None
        self.failed = False
        self.disconnected = False

    @property
    def is_open(self) -> bool:
        if self.disconnected or self.failed:
            return False
        return (
            getattr(self.websocket, "client_state", None) == WebSocketState.CONNECTED
            and getattr(self.websocket, "application_state", None) == WebSocketState.CONNECTED
        )

    def enqueue(self, payload: dict) -> bool:
        """Queue a payload for the writer. Never waits; False if the outbox is full."""
        try:
            self.outbox.put_nowait(payload)
        except asyncio.QueueFull:
            return False
        return True

    def discard_pending(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()
            self.outbox.task_done()

    async def send_json(self, data: dict) -> None:
        await self.websocket.send_json(data)

    async def close(self, code: int = 1011) -> None:
        await self.websocket.close(code=code)

    def __repr__(self) -> str:
        return f"ChatSession(username={self.username!r}, room={self.current_room!r})"
