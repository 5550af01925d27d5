"""Per-user server-sent event fan-out"""
import asyncio
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

from .errors import MarlanError
from .utils.sse import format_sse
from .utils.structured_logger import get_logger

logger = get_logger(__name__)

MAX_CONNECTIONS = 100
PING_INTERVAL_SECONDS = 30


class ConnectionLimitReached(MarlanError):
    """Raised when the event stream is at its connection limit (HTTP 503)"""


@dataclass
class EventClient:
    user_id: str
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)


class EventsManager:
    """
    Registry of connected SSE clients

    Each connection owns a queue. Publishers put events on the queues of the
    target user's connections; the streaming response drains its own queue
    and emits a ping when nothing arrived for ping_interval seconds.
    """

    def __init__(self, max_connections: int = MAX_CONNECTIONS, ping_interval: float = PING_INTERVAL_SECONDS):
        self.max_connections = max_connections
        self.ping_interval = ping_interval
        self._clients: Dict[str, EventClient] = {}

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def connect(self, user_id: str) -> EventClient:
        if self.client_count >= self.max_connections:
            logger.warning("Too many event stream connections", connection_count=self.client_count)
            raise ConnectionLimitReached("Too many connections")

        client = EventClient(user_id=user_id)
        self._clients[client.connection_id] = client
        logger.info("Event stream connected", connection_id=client.connection_id, connection_count=self.client_count)
        return client

    def disconnect(self, client: EventClient):
        if self._clients.pop(client.connection_id, None):
            logger.info("Event stream disconnected", connection_id=client.connection_id)

    def send_event_to_user(self, user_id: str, event: dict) -> int:
        """Queue an event for every connection of a user; returns the number of connections reached"""
        delivered = 0
        for client in self._clients.values():
            if client.user_id == user_id:
                client.queue.put_nowait(event)
                delivered += 1
        logger.debug("Event sent to user", event_type=event.get("type"), delivered=delivered)
        return delivered

    def broadcast(self, event: dict) -> int:
        for client in self._clients.values():
            client.queue.put_nowait(event)
        return self.client_count

    async def stream(self, client: EventClient, max_events: Optional[int] = None) -> AsyncIterator[str]:
        """
        Yield SSE frames for one connection until the client goes away

        Args:
            client: Connection returned by connect()
            max_events: Stop after this many frames (None streams forever)
        """
        sent = 0
        try:
            user_preview = f"{client.user_id[:8]}..."
            yield format_sse({"type": "connected", "connectionId": client.connection_id, "userId": user_preview})
            sent += 1

            while max_events is None or sent < max_events:
                try:
                    event = await asyncio.wait_for(client.queue.get(), timeout=self.ping_interval)
                except asyncio.TimeoutError:
                    event = {"type": "ping"}
                yield format_sse(event)
                sent += 1
        finally:
            self.disconnect(client)
