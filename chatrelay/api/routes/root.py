# chatrelay/api/routes/root.py

from fastapi import APIRouter, Depends

from chatrelay.api.routes.utils import get_connection_manager
from chatrelay.services.connection_manager import ConnectionManager

router = APIRouter()


@router.get("/api")
async def root(manager: ConnectionManager = Depends(get_connection_manager)):
    """
    API information.

    "/" itself serves the client application's index.html.
    """
    return {
        "message": "Room Chat Relay",
        "version": "1.0",
        "rooms": [room.name for room in manager.room_manager.list_rooms()],
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
