"""
WebSocket manager — connection bookkeeping and channel broadcast.

1. Client connection management (one client may hold several connections)
2. Channel subscriptions
3. Channel broadcast with dead-connection cleanup
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    websocket: WebSocket
    client_id: str
    connection_id: str
    connected_at: datetime = field(default_factory=datetime.now)
    subscribed_channels: set[str] = field(default_factory=set)


class WebSocketManager:
    """
    Tracks WebSocket connections.

    - connection_id -> ConnectionInfo
    - channel -> set of connection_ids
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionInfo] = {}
        self._channel_subscribers: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()
        self._connection_counter = 0

    def _generate_connection_id(self, client_id: str) -> str:
        self._connection_counter += 1
        return f"{client_id}_{self._connection_counter}"

    async def connect(self, websocket: WebSocket, client_id: str) -> Optional[str]:
        """Accept the socket. Returns its connection id, or None on failure."""
        try:
            await websocket.accept()
        except Exception as e:
            logger.error("WebSocket connect failed: %s", e)
            return None

        async with self._lock:
            connection_id = self._generate_connection_id(client_id)
            self._connections[connection_id] = ConnectionInfo(
                websocket=websocket,
                client_id=client_id,
                connection_id=connection_id,
            )

        logger.info("WebSocket connected: %s (conn_id: %s)", client_id, connection_id)
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            conn = self._connections.pop(connection_id, None)
            if conn is None:
                return
            for channel in conn.subscribed_channels:
                subscribers = self._channel_subscribers.get(channel)
                if subscribers is not None:
                    subscribers.discard(connection_id)
        logger.info("WebSocket disconnected: %s", connection_id)

    async def subscribe_channel(self, connection_id: str, channel: str) -> None:
        async with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None:
                return
            self._channel_subscribers.setdefault(channel, set()).add(connection_id)
            conn.subscribed_channels.add(channel)
        logger.debug("Connection %s subscribed to %s", connection_id, channel)

    async def broadcast_to_channel(self, channel: str, message: dict[str, Any]) -> int:
        """Send to every subscriber of ``channel``. Returns the number reached."""
        async with self._lock:
            targets = [
                self._connections[cid]
                for cid in self._channel_subscribers.get(channel, set())
                if cid in self._connections
            ]

        sent = 0
        dead: list[str] = []
        for conn in targets:
            try:
                await conn.websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.warning("Send to %s failed: %s", conn.connection_id, e)
                dead.append(conn.connection_id)

        for connection_id in dead:
            await self.disconnect(connection_id)
        return sent

    @property
    def connection_count(self) -> int:
        return len(self._connections)
