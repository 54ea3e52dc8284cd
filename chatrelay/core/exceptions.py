# chatrelay/core/exceptions.py

from __future__ import annotations


class ChatRelayError(Exception):
    """Base class for conditions the relay logs and drops."""


class RoomNotFound(ChatRelayError):
    """A join (or lookup) referenced a room outside the configured set."""

    def __init__(self, room_name: str | None) -> None:
        self.room_name = room_name
        super().__init__(f"Room not found: {room_name!r}")


class InvalidState(ChatRelayError):
    """An event arrived that the session's current state does not allow."""


class MalformedPayload(ChatRelayError):
    """An inbound frame could not be decoded into a known event."""


class DeliveryFailure(ChatRelayError):
    """A send to one recipient failed or timed out during a broadcast."""
