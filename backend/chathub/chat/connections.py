"""WebSocket connection manager for the chat hub.

Owns the transport side of every session: the WebSocket, a bounded outbound
queue and a writer task draining that queue. Delivery is fire-and-forget per
session:

    - Enqueueing never blocks; a full queue drops the event for that session
      only and logs a warning.
    - A failed send stops that session's writer; other sessions are
      unaffected.
    - Disconnecting cancels the writer and discards anything still queued.

Thread Safety:
    Designed for async/await usage with a single event loop. The hub's own
    state is lock-guarded separately; this class only touches queues.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from chathub.config import get_config

from .hub import Outbound

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256


@dataclass
class _Connection:
    websocket: WebSocket
    queue: "asyncio.Queue[Dict[str, Any]]"
    writer: "Optional[asyncio.Task[None]]" = None
    closed: bool = False


class ConnectionManager:
    """Maps session ids to live WebSocket connections.

    Args:
        queue_size: Maximum number of undelivered events buffered per session.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self._connections: Dict[str, _Connection] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a WebSocket, assign it a fresh session id and start its writer.

        Returns:
            The backend-generated session id (never reused).
        """
        await websocket.accept()
        session_id = str(uuid.uuid4())
        connection = _Connection(websocket=websocket, queue=asyncio.Queue(maxsize=self.queue_size))
        connection.writer = asyncio.create_task(self._writer(session_id, connection))
        self._connections[session_id] = connection
        logger.debug(f"[WS] Session {session_id} connected")
        return session_id

    def disconnect(self, session_id: str) -> None:
        """Stop the session's writer and discard its queued events.

        Synchronous; safe to call from a cancelled endpoint task.
        """
        connection = self._connections.pop(session_id, None)
        if connection is None:
            return
        connection.closed = True
        dropped = connection.queue.qsize()
        if connection.writer is not None:
            connection.writer.cancel()
        if dropped:
            logger.debug(f"[WS] Discarded {dropped} queued events for {session_id}")

    def send(self, session_id: str, frame: Dict[str, Any]) -> bool:
        """Queue one frame for a session without waiting.

        Returns:
            True if queued, False if the session is gone, dead or backed up.
        """
        connection = self._connections.get(session_id)
        if connection is None or connection.closed:
            return False
        try:
            connection.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                f"[WS] Outbound queue full for {session_id}; dropped {frame.get('type')}"
            )
            return False
        return True

    def deliver(self, outbound: Iterable[Outbound]) -> int:
        """Queue every outbound event for each of its targets, in order.

        Returns:
            Number of frames successfully queued.
        """
        queued = 0
        for event in outbound:
            frame = event.frame()
            for session_id in event.targets:
                if self.send(session_id, frame):
                    queued += 1
        return queued

    def close_all(self) -> None:
        for session_id in list(self._connections):
            self.disconnect(session_id)

    def is_connected(self, session_id: str) -> bool:
        connection = self._connections.get(session_id)
        return connection is not None and not connection.closed

    def get_connection_count(self) -> int:
        return len(self._connections)

    async def _writer(self, session_id: str, connection: _Connection) -> None:
        """Drain one session's queue onto its WebSocket until it fails."""
        while True:
            frame = await connection.queue.get()
            try:
                await connection.websocket.send_json(frame)
            except Exception as e:
                logger.debug(f"Failed to send to session {session_id}: {e}")
                connection.closed = True
                return


# Global singleton instance used by the WebSocket router
connections = ConnectionManager(queue_size=get_config().hub.outbound_queue_size)
