# chatrelay/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from chatrelay.api.routes.utils import get_connection_manager
from chatrelay.core.exceptions import RoomNotFound
from chatrelay.models.models import RoomDetail, RoomInfo
from chatrelay.services.connection_manager import ConnectionManager

router = APIRouter()

# ============================================================================
# ROOM READ ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=List[RoomInfo])
async def list_rooms(manager: ConnectionManager = Depends(get_connection_manager)):
    """
    List the configured rooms with live member and history counts.

    The room set is fixed at startup; there are no create/delete endpoints.
    """
    return [room.info() for room in manager.room_manager.list_rooms()]


@router.get("/rooms/{room_name}", response_model=RoomDetail)
async def get_room(room_name: str, manager: ConnectionManager = Depends(get_connection_manager)):
    """
    Get details of a specific room, including who is in it.

    Raises:
        HTTPException: 404 if the room is not part of the configured set
    """
    try:
        room = manager.room_manager.get_room(room_name)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetail(**room.info().model_dump(), users=room.usernames())
