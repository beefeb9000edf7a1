"""WebSocket connection manager for committed display updates."""

import logging
import uuid

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections and broadcasts."""

    def __init__(self):
        # Map: client_id -> WebSocket
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, client_id: str | None = None) -> str:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        client_id = client_id or uuid.uuid4().hex[:8]
        self.active_connections[client_id] = websocket
        logger.info(f"WebSocket connected: {client_id}")
        return client_id

    def disconnect(self, client_id: str):
        """Remove a WebSocket connection."""
        if client_id in self.active_connections:
            del self.active_connections[client_id]
            logger.info(f"WebSocket disconnected: {client_id}")

    async def broadcast_all(self, message: dict):
        """Broadcast message to all connected clients."""
        disconnected = []

        for client_id, connection in list(self.active_connections.items()):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Error broadcasting to {client_id}: {e}")
                disconnected.append(client_id)

        # Clean up disconnected clients
        for client_id in disconnected:
            self.disconnect(client_id)

        if self.active_connections:
            logger.debug(f"Broadcast to {len(self.active_connections)} clients: {message.get('type')}")

    def count(self) -> int:
        """Return number of active connections."""
        return len(self.active_connections)
