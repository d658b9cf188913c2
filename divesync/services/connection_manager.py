"""Manages WebSocket connections of dive list presentation clients."""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect

from divesync.domain.snapshots import ProjectionSnapshot

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected presentation clients and pushes projection snapshots."""

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def send_snapshot(self, websocket: WebSocket, snapshot: ProjectionSnapshot) -> None:
        await websocket.send_json(snapshot.model_dump(mode="json"))

    async def broadcast_snapshot(self, snapshot: ProjectionSnapshot) -> None:
        """Send *snapshot* to every connected client, dropping dead connections."""
        payload = snapshot.model_dump(mode="json")
        for ws in list(self._connections):
            try:
                await ws.send_json(payload)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.info("Dropping presentation client after failed send: %s", exc)
                self.disconnect(ws)
