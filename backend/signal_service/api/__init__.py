"""API endpoints."""

from signal_service.api.routes import router
from signal_service.api.websocket import manager, websocket_endpoint, ConnectionManager

__all__ = [
    "router",
    "manager",
    "websocket_endpoint",
    "ConnectionManager",
]
