from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Websocket connections grouped by room, one room per pub/sub channel."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._socket_to_room: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket, room: str, role: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[room].add(websocket)
            self._socket_to_room[websocket] = room
        logger.info("ws_client_connected", extra={"room": room, "role": role})

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            room = self._socket_to_room.pop(websocket, None)
            if room is None:
                return
            sockets = self._connections.get(room)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(room, None)
        logger.info("ws_client_disconnected", extra={"room": room})

    async def connection_count(self, room: str) -> int:
        async with self._lock:
            return len(self._connections.get(room, set()))

    async def broadcast(self, room: str, message_json_str: str) -> None:
        async with self._lock:
            targets = list(self._connections.get(room, set()))

        stale: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(message_json_str)
            except Exception:
                logger.warning("ws_send_failed", extra={"room": room})
                stale.append(websocket)

        for websocket in stale:
            await self.unregister(websocket)
