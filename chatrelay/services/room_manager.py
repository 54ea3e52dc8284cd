# chatrelay/services/room_manager.py

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Dict, Iterable, List, Set
import logging

from chatrelay.core.exceptions import RoomNotFound
from chatrelay.models.models import ChatMessage, RoomInfo
from chatrelay.services.session import ChatSession

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class Room:
    """
    One named chat room: its live members, its recent history and its lock.

    Attributes:
        name: Room name from the configured set
        members: Sessions currently in the room (identity-keyed)
        history: Most recent chat messages, oldest first. The deque's maxlen
                 evicts exactly one entry per append once full.
        lock: Serializes membership changes, history appends and the
              broadcasts they trigger for this room only
    """

    def __init__(self, name: str, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.name = name
        self.members: Set[ChatSession] = set()
        self.history: Deque[ChatMessage] = deque(maxlen=history_limit)
        self.lock = asyncio.Lock()

    def add_member(self, session: ChatSession) -> None:
        self.members.add(session)

    def remove_member(self, session: ChatSession) -> None:
        self.members.discard(session)

    def append_history(self, message: ChatMessage) -> None:
        self.history.append(message)

    def recent_history(self) -> List[ChatMessage]:
        return list(self.history)

    def usernames(self) -> List[str]:
        """Usernames of members whose connection is still open."""
        return [s.username for s in self.members if s.username and s.is_open]

    def info(self) -> RoomInfo:
        return RoomInfo(
            name=self.name,
            member_count=len(self.members),
            history_size=len(self.history),
        )

    def __repr__(self) -> str:
        return f"Room({self.name!r}, members={len(self.members)}, history={len(self.history)})"


# ============================================================================
# ROOM REGISTRY
# ============================================================================
class RoomManager:
    """
    Registry of the fixed set of chat rooms.

    Every room named at construction is created up front and lives as long as
    the registry. There is no way to add or remove rooms afterwards; lookups
    for any other name raise RoomNotFound.

    Usage:
        room_manager = RoomManager(["general", "ambient"])
        room = room_manager.get_room("general")
    """

    def __init__(self, room_names: Iterable[str], history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.history_limit = history_limit
        self.rooms: Dict[str, Room] = {}
        for name in room_names:
            if name not in self.rooms:
                self.rooms[name] = Room(name, history_limit=history_limit)
        logger.info("✓ Rooms created: %s", list(self.rooms))

    def get_room(self, name: str | None) -> Room:
        """
        Get a room by name.

        Raises:
            RoomNotFound: name is None or not part of the configured set
        """
        room = self.rooms.get(name) if name is not None else None
        if room is None:
            raise RoomNotFound(name)
        return room

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    def __contains__(self, name: object) -> bool:
        return name in self.rooms
