# chatrelay/services/broadcaster.py

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from chatrelay.core.exceptions import DeliveryFailure
from chatrelay.models.models import OutboundMessage
from chatrelay.services.room_manager import Room
from chatrelay.services.session import DEFAULT_QUEUE_SIZE, ChatSession

logger = logging.getLogger(__name__)


class Broadcaster:
    """
    Best-effort fan-out of server messages to room members.

    Fan-out never waits on a socket: each message is put on every recipient's
    outbox, and a per-session writer task does the actual sends. A send that
    raises or exceeds ``send_timeout``, or an outbox that overflows, marks the
    session failed. Failed sessions get nothing more and their writer closes
    the socket, which ends the connection's receive loop and so its
    disconnect. There are no acknowledgements and no retries.

    One outbox per session keeps every member's view of a room in the order
    the room produced it.
    """

    def __init__(self, send_timeout: float = 5.0, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.send_timeout = send_timeout
        self.queue_size = queue_size

    def start(self, session: ChatSession) -> None:
        session.writer = asyncio.create_task(self._write_loop(session))

    def stop(self, session: ChatSession) -> None:
        """Cancel the writer and drop whatever it had not sent yet."""
        if session.writer is not None and not session.writer.done():
            session.writer.cancel()
        session.discard_pending()

    def send_to(self, session: ChatSession, message: OutboundMessage) -> bool:
        """
        Queue one message for one session.

        Returns:
            True if queued, False if the session is closed, failed or full.
        """
        if not session.is_open:
            return False
        return self._deliver(session, message.model_dump(mode="json"))

    def broadcast(
        self,
        room: Room,
        message: OutboundMessage,
        exclude: Optional[ChatSession] = None,
    ) -> int:
        """
        Broadcast a message to every open member of a room.

        Args:
            room: Target room
            message: Outbound message model (serialized once)
            exclude: Optional session that must not receive the message

        Returns:
            Number of members the message was queued for. Used for logging only.
        """
        recipients = [s for s in list(room.members) if s is not exclude and s.is_open]
        if not recipients:
            logger.debug("[routing] Skipped broadcast: room=%s has 0 open members", room.name)
            return 0

        payload = message.model_dump(mode="json")
        queued = sum(1 for s in recipients if self._deliver(s, payload))

        logger.info(
            "📤 %s queued for %d/%d members in %s",
            message.type, queued, len(recipients), room.name,
        )
        return queued

    def _deliver(self, session: ChatSession, payload: dict) -> bool:
        if session.enqueue(payload):
            return True
        self._fail(session, f"outbox full ({self.queue_size} pending)")
        return False

    def _fail(self, session: ChatSession, reason: str) -> None:
        session.failed = True
        logger.error("Send error: %s", DeliveryFailure(f"{session!r}: {reason}"))

    async def _write_loop(self, session: ChatSession) -> None:
        while True:
            payload = await session.outbox.get()
            try:
                if not session.failed:
                    await asyncio.wait_for(session.send_json(payload), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                self._fail(session, f"send timed out after {self.send_timeout}s")
            except Exception as e:
                self._fail(session, f"send failed: {e}")
            finally:
                session.outbox.task_done()

            if session.failed:
                session.discard_pending()
                await self._close(session)
                return

    async def _close(self, session: ChatSession) -> None:
        try:
            await asyncio.wait_for(session.close(), timeout=self.send_timeout)
        except Exception as e:
            logger.warning("Could not close failed connection %r: %s", session, e)
