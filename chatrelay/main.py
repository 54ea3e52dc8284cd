# chatrelay/main.py

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from chatrelay.core.config import Settings, settings as default_settings
from chatrelay.core.logging import setup_logging
from chatrelay.api.routes import root, health, metrics, rooms
from chatrelay.api import websocket as websocket_module
from chatrelay.services.broadcaster import Broadcaster
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.room_manager import RoomManager

logger = logging.getLogger(__name__)

REQUIRED_PUBLIC_FILES = ("index.html", "style.css", "script.js")


def check_public_dir(public_dir: str) -> list[str]:
    """
    Log what the static directory holds and return the required files it lacks.

    Missing assets only break the browser client, so this never aborts startup.
    """
    if not os.path.isdir(public_dir):
        logger.error("❌ Static directory '%s' not found", public_dir)
        return list(REQUIRED_PUBLIC_FILES)

    files = sorted(os.listdir(public_dir))
    logger.info("📁 Files in %s: %s", public_dir, files)

    missing = [name for name in REQUIRED_PUBLIC_FILES if name not in files]
    if missing:
        logger.error("❌ Missing static files in %s: %s", public_dir, missing)
    return missing


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application with its own room registry and lifecycle controller.

    Both live on ``app.state`` so separate apps (e.g. one per test) never
    share rooms.
    """
    settings = settings or default_settings

    app = FastAPI(title="Room Chat Relay")

    room_manager = RoomManager(settings.CHAT_ROOMS, history_limit=settings.HISTORY_LIMIT)
    broadcaster = Broadcaster(
        send_timeout=settings.SEND_TIMEOUT_SECONDS,
        queue_size=settings.SEND_QUEUE_SIZE,
    )
    app.state.settings = settings
    app.state.room_manager = room_manager
    app.state.connection_manager = ConnectionManager(room_manager, broadcaster)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    # Static client last, so it only answers paths no route claimed
    if os.path.isdir(settings.PUBLIC_DIR):
        app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")

    @app.on_event("startup")
    async def startup_event():
        logger.info("🚀 Room Chat Relay starting - rooms: %s", list(room_manager.rooms))
        check_public_dir(settings.PUBLIC_DIR)

    return app


def run() -> None:
    import uvicorn

    # Configure logging first
    setup_logging(default_settings.LOG_LEVEL)
    uvicorn.run(
        "chatrelay.main:create_app",
        factory=True,
        host=default_settings.HOST,
        port=default_settings.PORT,
    )


if __name__ == "__main__":
    run()
