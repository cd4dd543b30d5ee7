"""
WebSocket Manager

Tracks open command connections. Connections carry no session state; the
manager only keeps bookkeeping used for stats and stale-connection cleanup.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from eventhub.schemas.command import Command, CommandResult
from eventhub.utils.metrics import WS_CONNECTIONS_ACTIVE

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """WebSocket message types sent to clients."""

    CONNECTED = "connected"
    RESULT = "result"


@dataclass
class WebSocketConnection:
    """Represents an active WebSocket connection."""

    websocket: WebSocket
    client: str | None = None
    commands_handled: int = 0
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def result_message(command: Command | None, result: CommandResult) -> dict[str, Any]:
    """Build the frame that carries a command's result back to the caller."""
    return {
        "type": MessageType.RESULT.value,
        "ops": command.ops.value if command else None,
        "command": command.code if command else None,
        **result.model_dump(mode="json"),
    }


class WebSocketManager:
    """Registry of open command connections."""

    def __init__(self):
        self._connections: dict[str, WebSocketConnection] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, connection_id: str | None = None) -> str:
        """
        Accept and register a new WebSocket connection.

        Returns:
            Connection ID
        """
        await websocket.accept()
        connection_id = connection_id or str(uuid.uuid4())
        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else None

        async with self._lock:
            self._connections[connection_id] = WebSocketConnection(websocket=websocket, client=client)
            WS_CONNECTIONS_ACTIVE.set(len(self._connections))

        logger.info(f"WebSocket connected: {connection_id} ({client})")

        await self.send(
            connection_id,
            {
                "type": MessageType.CONNECTED.value,
                "connection_id": connection_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            connection = self._connections.pop(connection_id, None)
            WS_CONNECTIONS_ACTIVE.set(len(self._connections))

        if connection:
            logger.info(f"WebSocket disconnected: {connection_id} after {connection.commands_handled} commands")

    async def mark_activity(self, connection_id: str) -> None:
        async with self._lock:
            connection = self._connections.get(connection_id)
            if connection:
                connection.commands_handled += 1
                connection.last_activity = datetime.now(timezone.utc)

    async def send(self, connection_id: str, message: dict) -> bool:
        """
        Send a message to a specific connection.

        Returns:
            True if sent successfully
        """
        connection = self._connections.get(connection_id)
        if not connection:
            return False

        try:
            await connection.websocket.send_json(message)
            return True
        except WebSocketDisconnect:
            await self.disconnect(connection_id)
            return False
        except Exception as e:
            logger.error(f"Error sending to {connection_id}: {e}")
            return False

    def get_connection_info(self, connection_id: str) -> dict | None:
        connection = self._connections.get(connection_id)
        if not connection:
            return None

        return {
            "connection_id": connection_id,
            "client": connection.client,
            "commands_handled": connection.commands_handled,
            "connected_at": connection.connected_at.isoformat(),
            "last_activity": connection.last_activity.isoformat(),
        }

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self._connections),
            "commands_handled": sum(c.commands_handled for c in self._connections.values()),
        }

    async def cleanup_stale_connections(self, timeout_seconds: int = 300) -> int:
        """Close connections idle for longer than ``timeout_seconds``."""
        now = datetime.now(timezone.utc)

        async with self._lock:
            stale = [
                (conn_id, connection)
                for conn_id, connection in self._connections.items()
                if (now - connection.last_activity).total_seconds() > timeout_seconds
            ]

        for conn_id, connection in stale:
            try:
                await connection.websocket.close()
            except Exception as e:
                logger.warning(f"Error closing stale connection {conn_id}: {e}")
            await self.disconnect(conn_id)

        if stale:
            logger.info(f"Cleaned up {len(stale)} stale connections")

        return len(stale)


# Global manager instance
websocket_manager = WebSocketManager()


def get_websocket_manager() -> WebSocketManager:
    """Get the WebSocket manager singleton."""
    return websocket_manager
