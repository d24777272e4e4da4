"""Connection Manager - per-user rooms for the live channel

Every authenticated socket that sent `add-user` joins the room of its user.
A user may hold several sockets at once (tabs, devices). Events are fanned
out to rooms, never to all connected sockets.

The registry is in-process: with several workers each process only knows its
own sockets.
"""

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Registry user_id -> open sockets"""

    def __init__(self):
        self._rooms: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def join(self, user_id: UUID | str, websocket: WebSocket) -> None:
        """Add a socket to the user's room"""
        room = str(user_id)
        async with self._lock:
            self._rooms.setdefault(room, set()).add(websocket)
            size = len(self._rooms[room])
        logger.info(f"Socket joined room {room} ({size} open)")

    async def leave(self, user_id: UUID | str, websocket: WebSocket) -> None:
        """Remove a socket from the user's room (no-op if it already left)"""
        room = str(user_id)
        async with self._lock:
            sockets = self._rooms.get(room)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._rooms[room]
        logger.info(f"Socket left room {room}")

    def is_online(self, user_id: UUID | str) -> bool:
        return bool(self._rooms.get(str(user_id)))

    def connection_count(self, user_id: UUID | str) -> int:
        return len(self._rooms.get(str(user_id), ()))

    async def emit_to_user(self, user_id: UUID | str, message: dict[str, Any]) -> int:
        """Send a frame to every socket in the user's room

        Sockets that fail to receive are dropped from the room.

        Returns:
            Number of sockets the frame was delivered to
        """
        room = str(user_id)
        async with self._lock:
            sockets = list(self._rooms.get(room, ()))

        delivered = 0
        dead: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping dead socket in room {room}: {e}")
                dead.append(websocket)

        for websocket in dead:
            await self.leave(room, websocket)
        return delivered

    async def emit_to_users(self, user_ids: list[UUID | str], message: dict[str, Any]) -> int:
        """Send a frame to several rooms, each room at most once"""
        delivered = 0
        for room in dict.fromkeys(str(user_id) for user_id in user_ids):
            delivered += await self.emit_to_user(room, message)
        return delivered


# Singleton instance
connection_manager = ConnectionManager()
