# chatrelay/api/routes/metrics.py
from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from chatrelay.api.routes.utils import get_connection_manager
from chatrelay.services.connection_manager import ConnectionManager

router = APIRouter()

@router.get("/metrics")
async def get_metrics(manager: ConnectionManager = Depends(get_connection_manager)):
    """
    Traffic and capacity metrics for this process.

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 3.5,
            "messages_per_second": 0.1,
            "concurrent_connections": 12,
            "total_rooms": 5,
            "active_rooms_with_members": 2,
            "rooms": {"general": {"name": "general", "member_count": 8, ...}}
        }

    Counts are in-memory and reset when the process restarts.
    """
    uptime_seconds = (datetime.now(timezone.utc) - manager.started_at).total_seconds()

    if uptime_seconds > 0:
        messages_per_second = manager.message_counter / uptime_seconds
    else:
        messages_per_second = 0

    rooms_info = manager.get_rooms_info()

    return {
        # Statistics
        "total_messages": manager.message_counter,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "daily_messages_projected": int(messages_per_second * 86400),

        # Capacity
        "concurrent_connections": len(manager.sessions),
        "total_rooms": len(rooms_info),
        "active_rooms_with_members": sum(1 for info in rooms_info.values() if info["member_count"]),
        "rooms": rooms_info,
    }
