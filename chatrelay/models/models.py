# chatrelay/models/models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# SERVER -> CLIENT
# ============================================================================

class ChatMessage(BaseModel):
    """A user-authored chat line. The only kind kept in room history."""
    type: Literal["message"] = "message"
    username: str
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)


class SystemMessage(BaseModel):
    type: Literal["system"] = "system"
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)


class UserListMessage(BaseModel):
    type: Literal["userList"] = "userList"
    users: List[str]


OutboundMessage = Union[ChatMessage, SystemMessage, UserListMessage]


# ============================================================================
# CLIENT -> SERVER
# ============================================================================

class JoinEvent(BaseModel):
    type: Literal["join"]
    # Both fields are client-asserted; the lifecycle controller tolerates absence
    username: Optional[str] = None
    room: Optional[str] = None


class MessageEvent(BaseModel):
    type: Literal["message"]
    message: str


class DisconnectEvent(BaseModel):
    """Produced by the transport when the connection closes. Never sent by clients."""
    type: Literal["disconnect"] = "disconnect"


InboundEvent = Annotated[Union[JoinEvent, MessageEvent], Field(discriminator="type")]
inbound_event_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)

CLIENT_EVENT_TYPES = ("join", "message")


# ============================================================================
# REST
# ============================================================================

class RoomInfo(BaseModel):
    name: str
    member_count: int = 0
    history_size: int = 0


class RoomDetail(RoomInfo):
    users: List[str] = []
