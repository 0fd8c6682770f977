# family_companion/managers/websocket_manager.py

import json
import logging
import uuid
from datetime import datetime
from typing import Dict, Optional, Iterable

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class ConnectionHub:
    """In-memory map of open client sockets with send and broadcast"""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.connection_info: Dict[str, dict] = {}

    @staticmethod
    def new_connection_id() -> str:
        return uuid.uuid4().hex[:8]

    async def register(self, websocket: WebSocket, agent: Optional[str] = None) -> str:
        """Accept the socket and start tracking it"""
        await websocket.accept()
        connection_id = self.new_connection_id()
        self.active_connections[connection_id] = websocket
        self.connection_info[connection_id] = {
            "connected_at": datetime.now(),
            "last_activity": datetime.now(),
            "message_count": 0,
            "agent": agent,
        }
        logger.info(f"Client {connection_id} connected (agent={agent}, total={len(self.active_connections)})")
        return connection_id

    def unregister(self, connection_id: str) -> Optional[WebSocket]:
        self.connection_info.pop(connection_id, None)
        websocket = self.active_connections.pop(connection_id, None)
        if websocket is not None:
            logger.info(f"Client {connection_id} removed (total={len(self.active_connections)})")
        return websocket

    def touch(self, connection_id: str):
        info = self.connection_info.get(connection_id)
        if info:
            info["last_activity"] = datetime.now()
            info["message_count"] += 1

    async def send(self, connection_id: str, data: dict) -> bool:
        """Send one JSON frame; a failed send drops the client"""
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            logger.warning(f"No active connection for {connection_id}")
            return False

        if websocket.client_state != WebSocketState.CONNECTED:
            self.unregister(connection_id)
            return False

        try:
            message = json.dumps(data, default=_json_default)
            await websocket.send_text(message)
            logger.debug(f"Sent to {connection_id}: {data.get('type', 'unknown')} ({len(message)} chars)")
            return True
        except Exception as e:
            logger.error(f"Failed to send message to client {connection_id}: {e}")
            self.unregister(connection_id)
            return False

    async def broadcast(self, data: dict, exclude: Optional[Iterable[str]] = None) -> int:
        """Send to every open client except the excluded ones; returns the delivered count"""
        excluded = set(exclude or [])
        delivered = 0

        # Snapshot, since failed sends mutate the map
        for connection_id in list(self.active_connections):
            if connection_id in excluded:
                continue
            if await self.send(connection_id, data):
                delivered += 1

        logger.info(f"Broadcast {data.get('type', 'unknown')} to {delivered} client(s)")
        return delivered

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.active_connections

    def connection_count(self) -> int:
        return len(self.active_connections)

    def get_connection_stats(self) -> dict:
        return {
            "total_active_connections": len(self.active_connections),
            "clients": {
                connection_id: {
                    "agent": info.get("agent"),
                    "connected_at": info["connected_at"].isoformat(),
                    "last_activity": info["last_activity"].isoformat(),
                    "message_count": info["message_count"],
                }
                for connection_id, info in self.connection_info.items()
            },
        }

    async def close_all(self):
        for connection_id in list(self.active_connections):
            websocket = self.unregister(connection_id)
            try:
                if websocket.client_state == WebSocketState.CONNECTED:
                    await websocket.close()
            except Exception as e:
                logger.warning(f"Error closing websocket for {connection_id}: {e}")
