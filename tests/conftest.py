import asyncio

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

from chatrelay.core.config import Settings
from chatrelay.main import create_app
from chatrelay.services.broadcaster import Broadcaster
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.room_manager import RoomManager

ROOMS = ["general", "melodic-techno", "ambient", "house", "drum-and-bass"]


class FakeWebSocket:
    """In-memory stand-in for a Starlette WebSocket."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.sent = []
        self.fail = fail
        self.delay = delay
        self.accepted = False
        self.closed_with = None
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING

    async def accept(self):
        self.accepted = True
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, data):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def close(self, code=1000):
        self.closed_with = code
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def drop(self):
        """Simulate the peer going away."""
        self.client_state = WebSocketState.DISCONNECTED

    def of_type(self, kind):
        return [m for m in self.sent if m["type"] == kind]


@pytest.fixture
def room_manager():
    return RoomManager(ROOMS)


@pytest.fixture
def broadcaster():
    return Broadcaster(send_timeout=0.2)


@pytest.fixture
def manager(room_manager, broadcaster):
    return ConnectionManager(room_manager, broadcaster)


@pytest.fixture
def connect(manager):
    """Factory: accept a fake connection and return (session, websocket)."""

    async def _connect(**kwargs):
        websocket = FakeWebSocket(**kwargs)
        session = await manager.connect(websocket)
        return session, websocket

    return _connect


@pytest.fixture
def flush(manager):
    """Wait until every live session's writer has sent what was queued."""

    async def _flush(timeout=2.0):
        outboxes = [s.outbox.join() for s in list(manager.sessions)]
        await asyncio.wait_for(asyncio.gather(*outboxes), timeout=timeout)

    return _flush


@pytest.fixture
def settings(monkeypatch, tmp_path):
    monkeypatch.setenv("CHAT_ROOMS", ",".join(ROOMS))
    monkeypatch.setenv("HISTORY_LIMIT", "100")
    monkeypatch.setenv("PUBLIC_DIR", str(tmp_path / "public"))
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
