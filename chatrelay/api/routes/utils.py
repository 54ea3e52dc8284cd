# chatrelay/api/routes/utils.py

from __future__ import annotations

from fastapi import Request

from chatrelay.services.connection_manager import ConnectionManager


def get_connection_manager(request: Request) -> ConnectionManager:
    """
    Dependency returning the app's lifecycle controller.

    Each app built by ``create_app`` owns its own registry and controller, so
    routes read them from ``app.state`` instead of module globals.
    """
    return request.app.state.connection_manager
