"""WebSocket endpoint for real-time snapshot updates."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from signal_engine.models import CycleSnapshot

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson (NaN/inf become null)."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "snapshot"
    data: dict[str, Any]
    timestamp: datetime

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump())


class ConnectionManager:
    """Track subscribers and push each new snapshot to all of them.

    The most recent snapshot is kept so late subscribers get it on
    connect instead of waiting up to a full cycle.
    """

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._latest: CycleSnapshot | None = None

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
            count = len(self._clients)
        logger.info(f"Subscriber joined ({count} connected)")

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
            count = len(self._clients)
        logger.info(f"Subscriber left ({count} connected)")

    async def broadcast(self, message: WebSocketMessage) -> None:
        """Send to every subscriber, dropping the ones that fail."""
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return

        text = message.to_json()
        stale = []
        for websocket in clients:
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.warning(f"Dropping subscriber after send failure: {e}")
                stale.append(websocket)

        if stale:
            async with self._lock:
                self._clients.difference_update(stale)

    def snapshot_message(self, snapshot: CycleSnapshot) -> WebSocketMessage:
        return WebSocketMessage(
            type="snapshot",
            data=snapshot.to_display(),
            timestamp=_utcnow(),
        )

    async def send_snapshot(self, snapshot: CycleSnapshot) -> None:
        """Remember and broadcast a completed snapshot (runner callback)."""
        self._latest = snapshot
        await self.broadcast(self.snapshot_message(snapshot))

    @property
    def latest(self) -> CycleSnapshot | None:
        return self._latest


# Global connection manager
manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Messages sent to clients:
    - connected: Sent once after the handshake
    - snapshot: Latest cycle snapshot (on connect and after every cycle)
    - ping/pong: Keep-alive

    Message format:
    {
        "type": "snapshot",
        "data": {...},
        "timestamp": "2024-01-01T00:00:00+00:00"
    }
    """
    await manager.connect(websocket)

    try:
        await websocket.send_text(_orjson_dumps({
            "type": "connected",
            "data": {"message": "Connected to Daytrade Signals"},
            "timestamp": _utcnow().isoformat(),
        }))

        if manager.latest is not None:
            await websocket.send_text(manager.snapshot_message(manager.latest).to_json())

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=60.0,
                )

                try:
                    message = orjson.loads(data)
                    await handle_client_message(websocket, message)
                except orjson.JSONDecodeError:
                    await websocket.send_text(_orjson_dumps({
                        "type": "error",
                        "data": {"message": "Invalid JSON"},
                        "timestamp": _utcnow().isoformat(),
                    }))

            except asyncio.TimeoutError:
                await websocket.send_text(_orjson_dumps({
                    "type": "ping",
                    "data": {},
                    "timestamp": _utcnow().isoformat(),
                }))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, message: dict) -> None:
    """Handle incoming message from client."""
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        await websocket.send_text(_orjson_dumps({
            "type": "pong",
            "data": {},
            "timestamp": _utcnow().isoformat(),
        }))
    else:
        await websocket.send_text(_orjson_dumps({
            "type": "error",
            "data": {"message": f"Unknown message type: {msg_type}"},
            "timestamp": _utcnow().isoformat(),
        }))
