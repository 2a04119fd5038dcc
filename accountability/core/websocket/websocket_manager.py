from fastapi import WebSocket
from typing import Dict
import logging
import asyncio

from accountability.schemas.websocket import WebSocketMessageType
from accountability.utils import time_utils

logger = logging.getLogger(__name__)

class ConnectionManager:
    """
    One live socket per user. Notifications and partner progress are pushed
    through it; users without a socket fall back to device push.
    """

    def __init__(self, heartbeat_interval: int = 30):
        self.active_connections: Dict[str, WebSocket] = {}
        self.heartbeat_tasks: Dict[str, asyncio.Task] = {}
        self.heartbeat_interval = heartbeat_interval

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        previous = self.active_connections.get(user_id)
        if previous is not None and previous is not websocket:
            await self.disconnect(previous, user_id, reason="replaced by a newer connection")
        self.active_connections[user_id] = websocket
        self.heartbeat_tasks[user_id] = asyncio.create_task(self._heartbeat_loop(user_id))

    async def disconnect(self, websocket: WebSocket, user_id: str, reason: str = "Unknown"):
        logger.warning(f"Disconnecting user {user_id}. Reason: {reason}")
        # A newer socket may have replaced this one; only drop our own
        if self.active_connections.get(user_id) is websocket:
            del self.active_connections[user_id]
            task = self.heartbeat_tasks.pop(user_id, None)
            if task:
                task.cancel()
        try:
            if websocket.client_state.name == "CONNECTED":
                await websocket.close()
        except Exception as e:
            logger.warning(f"Failed to close WebSocket for user {user_id}: {e}")

    async def _heartbeat_loop(self, user_id: str):
        while user_id in self.active_connections:
            try:
                await self.send_notification(user_id, {
                    "type": WebSocketMessageType.HEARTBEAT.value,
                    "timestamp": time_utils.utc_now().isoformat()
                })
                await asyncio.sleep(self.heartbeat_interval)
            except asyncio.CancelledError:
                logger.info(f"Heartbeat task cancelled for user {user_id}")
                break

    def is_user_online(self, user_id: str) -> bool:
        return user_id in self.active_connections

    async def send_notification(self, user_id: str, message: dict):
        """Send a JSON message to the user's socket, dropping the socket on failure."""
        websocket = self.active_connections.get(user_id)
        if websocket is None:
            logger.warning(f"No active WebSocket connection for user {user_id}")
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"WebSocket send failed for user {user_id}: {e}")
            await self.disconnect(websocket, user_id, reason="send_json failed")


manager = ConnectionManager()
