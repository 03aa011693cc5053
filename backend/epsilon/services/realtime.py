"""WebSocket channel manager for live fall events."""
import asyncio
import json
import logging
from typing import Set, Dict, Any

from fastapi import WebSocket

from ..models import Fall

logger = logging.getLogger(__name__)


def fall_insert_message(fall: Fall) -> Dict[str, Any]:
    """Change event pushed to subscribers when a fall row is inserted."""
    return {
        "type": "INSERT",
        "table": "falls",
        "schema": "public",
        "record": {
            "id": fall.id,
            "user_id": fall.user_id,
            "is_fall": bool(fall.is_fall),
            "detected_at": fall.detected_at.isoformat() + "Z" if fall.detected_at else None,
        },
    }


class FallChannelManager:
    """Keeps one channel per user and pushes that user's fall inserts to it."""

    def __init__(self):
        self.channels: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket):
        """Accept a subscriber on the user's channel."""
        await websocket.accept()
        async with self._lock:
            self.channels.setdefault(user_id, set()).add(websocket)
        logger.info(f"Fall channel subscribed for user {user_id}. Listeners: {self.listener_count(user_id)}")

    async def disconnect(self, user_id: str, websocket: WebSocket):
        """Remove a subscriber; empty channels are dropped."""
        async with self._lock:
            sockets = self.channels.get(user_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.channels[user_id]
        logger.info(f"Fall channel unsubscribed for user {user_id}. Listeners: {self.listener_count(user_id)}")

    async def broadcast_to_user(self, user_id: str, message: Dict[str, Any]) -> int:
        """Send a message to every subscriber of one user.

        Returns:
            Number of subscribers that received it
        """
        async with self._lock:
            connections = list(self.channels.get(user_id, ()))

        if not connections:
            return 0

        message_json = json.dumps(message, default=str)

        delivered = 0
        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
                delivered += 1
            except Exception as e:
                logger.debug(f"Failed to send to fall channel: {e}")
                disconnected.append(websocket)

        if disconnected:
            async with self._lock:
                sockets = self.channels.get(user_id)
                if sockets is not None:
                    for ws in disconnected:
                        sockets.discard(ws)
                    if not sockets:
                        del self.channels[user_id]

        return delivered

    async def broadcast_fall_insert(self, fall: Fall) -> int:
        """Broadcast a newly inserted fall to its owner's channel."""
        return await self.broadcast_to_user(fall.user_id, fall_insert_message(fall))

    def listener_count(self, user_id: str) -> int:
        return len(self.channels.get(user_id, ()))

    @property
    def connection_count(self) -> int:
        """Return the number of open subscriber sockets."""
        return sum(len(sockets) for sockets in self.channels.values())


# Global instance
fall_channel_manager = FallChannelManager()
