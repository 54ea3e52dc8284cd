# chatrelay/services/connection_manager.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Set, Union
import logging

from chatrelay.core.exceptions import ChatRelayError, InvalidState
from chatrelay.models.models import (
    ChatMessage,
    DisconnectEvent,
    JoinEvent,
    MessageEvent,
    SystemMessage,
    UserListMessage,
)
from chatrelay.services.broadcaster import Broadcaster
from chatrelay.services.room_manager import Room, RoomManager
from chatrelay.services.session import ChatSession

logger = logging.getLogger(__name__)

Event = Union[JoinEvent, MessageEvent, DisconnectEvent]

# ============================================================================
# SESSION LIFECYCLE CONTROLLER
# ============================================================================

class ConnectionManager:
    """
    Tracks live sessions and drives their join / message / disconnect lifecycle.

    Every state change to a room happens under that room's lock, together with
    the broadcasts it causes, so history bounds and user lists stay consistent
    while many connections act on the same room. Broadcasts only queue onto
    per-session outboxes, so a lock is never held across a socket send, and no
    method ever holds two room locks at once.

    Session states:
        Unjoined -> Joined(room) -> Joined(other room) -> Disconnected

    Attributes:
        room_manager: Registry of the fixed room set
        broadcaster: Fan-out engine used for every room-wide message
        sessions: Sessions accepted and not yet disconnected
        message_counter: Chat messages relayed since start (for /metrics)
        started_at: When this manager was created
    """

    def __init__(self, room_manager: RoomManager, broadcaster: Broadcaster | None = None) -> None:
        self.room_manager = room_manager
        self.broadcaster = broadcaster or Broadcaster()
        self.sessions: Set[ChatSession] = set()
        self.message_counter: int = 0
        self.started_at: datetime = datetime.now(timezone.utc)

    async def connect(self, websocket: Any) -> ChatSession:
        """
        Accept a new WebSocket connection and start tracking it.

        The session joins no room until the client sends a "join" event.
        Its writer task starts here and lives until disconnect.
        """
        await websocket.accept()
        session = ChatSession(websocket, queue_size=self.broadcaster.queue_size)
        self.broadcaster.start(session)
        self.sessions.add(session)
        logger.info("🔗 New connection. Total: %d", len(self.sessions))
        return session

    async def dispatch(self, session: ChatSession, event: Event) -> None:
        """
        Route one inbound event to its handler.

        RoomNotFound and InvalidState are logged and the event is dropped;
        nothing is reported back to the client.
        """
        if session.disconnected:
            logger.debug("Ignoring %s for disconnected session", event.type)
            return

        try:
            if isinstance(event, JoinEvent):
                await self.on_join(session, event.username, event.room)
            elif isinstance(event, MessageEvent):
                await self.on_message(session, event.message)
            elif isinstance(event, DisconnectEvent):
                await self.on_disconnect(session)
            else:
                logger.warning("❓ Unhandled event type: %r", getattr(event, "type", event))
        except ChatRelayError as e:
            logger.warning("Dropped %s event: %s", event.type, e)

    async def on_join(self, session: ChatSession, username: str | None, room_name: str | None) -> None:
        """
        Move a session into a room.

        Process:
            1. Resolve the room (RoomNotFound leaves the session untouched)
            2. Leave the previous room, if any, and refresh its user list
            3. Record username and room, add to membership
            4. Queue the history for the joiner only
            5. Announce the join to the whole room, joiner included
            6. Broadcast the refreshed user list

        Steps 3-6 only queue messages, so the room lock is never held while
        waiting on a socket.
        """
        room = self.room_manager.get_room(room_name)

        if session.current_room is not None:
            await self._leave_room(session, announce=False)

        async with room.lock:
            session.username = username
            session.current_room = room.name
            room.add_member(session)
            logger.info("👤 %s joined %s (%d members)", username, room.name, len(room.members))

            for message in room.recent_history():
                self.broadcaster.send_to(session, message)

            notice = SystemMessage(message=f"{username or 'anonymous'} joined the chat")
            self.broadcaster.broadcast(room, notice)
            self._send_user_list(room)

    async def on_message(self, session: ChatSession, text: str) -> None:
        """
        Store a chat message in the session's room and echo it to every member.

        The sender receives its own message too; clients render from the echo.

        Raises:
            InvalidState: the session has not successfully joined a room
        """
        if session.current_room is None or not session.username:
            raise InvalidState("message sent without a room or username")

        room = self.room_manager.get_room(session.current_room)
        chat_message = ChatMessage(username=session.username, message=text)

        async with room.lock:
            room.append_history(chat_message)
            self.message_counter += 1
            logger.info("💬 %s in %s: %s", session.username, room.name, text)
            self.broadcaster.broadcast(room, chat_message)

    async def on_disconnect(self, session: ChatSession) -> None:
        """
        Handle connection closure and cleanup.

        Safe to call more than once. A session that never joined leaves
        silently; otherwise the remaining members get a leave notice and a
        fresh user list.

        Tracking and membership are dropped before the first await, so a
        cancelled disconnect (server shutdown, client teardown) can at most
        lose the announcements, never leave the session behind in a room.
        """
        if session.disconnected:
            return
        session.disconnected = True
        self.sessions.discard(session)
        self.broadcaster.stop(session)

        if session.current_room is not None:
            await self._leave_room(session, announce=bool(session.username))

        logger.info("✗ Connection closed. Total: %d", len(self.sessions))

    async def _leave_room(self, session: ChatSession, announce: bool) -> None:
        room = self.room_manager.get_room(session.current_room)
        room.remove_member(session)
        session.current_room = None

        async with room.lock:
            if announce:
                logger.info("👋 %s left %s", session.username, room.name)
                notice = SystemMessage(message=f"{session.username} left the chat")
                self.broadcaster.broadcast(room, notice)
            self._send_user_list(room)

    def _send_user_list(self, room: Room) -> int:
        users = room.usernames()
        logger.info("👥 User list for %s: %s", room.name, users)
        return self.broadcaster.broadcast(room, UserListMessage(users=users))

    def get_rooms_info(self) -> Dict[str, dict]:
        """
        Member and history counts per room, for the REST endpoints.
        """
        return {
            room.name: room.info().model_dump()
            for room in self.room_manager.list_rooms()
        }
