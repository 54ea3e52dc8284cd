# chatrelay/api/routes/health.py

from fastapi import APIRouter, Depends

from chatrelay.api.routes.utils import get_connection_manager
from chatrelay.services.connection_manager import ConnectionManager

router = APIRouter()

@router.get("/health")
async def health(manager: ConnectionManager = Depends(get_connection_manager)):
    """
    Health check endpoint.

    Returns:
        dict: Status, connection count, room count, rooms with members
    """
    rooms = manager.room_manager.list_rooms()
    return {
        "status": "healthy",
        "connections": len(manager.sessions),
        "rooms": len(rooms),
        "active_rooms_with_members": sum(1 for room in rooms if room.members),
    }
