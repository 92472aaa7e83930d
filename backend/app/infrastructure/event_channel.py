"""Event Channel - process-wide publish/subscribe broker for committed domain events.

Invariants:
    - publish() is fire-and-forget: never awaits, never raises on a slow or closed consumer
    - At-most-once per connected session per publish; no persistence, no redelivery
    - Per-connection FIFO queue: events for one connection arrive in publish order
    - Delivery is global; room membership (core/session_registry.py) is bookkeeping only
    - A full queue drops that event for that connection only (logged)

Design Decisions:
    - One bounded asyncio.Queue per connection, drained by its SSE generator
    - Singleton initialized in the FastAPI lifespan, same pattern as db_manager
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator
from uuid import UUID, uuid4

from app.core.errors import ErrorContext, ResourceNotFoundError
from app.core.session_registry import SessionRegistry
from app.schemas.events import to_wire
from app.schemas.post import CamelModel

logger = logging.getLogger(__name__)

# Sentinel queued to end a connection's stream
_CLOSED = object()

# Yielded by stream() when the heartbeat interval elapses with no event
HEARTBEAT = None


@dataclass
class ChannelConnection:
    """One subscriber of the channel (one browser tab)."""
    connection_id: str
    queue: asyncio.Queue
    user_id: UUID | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dropped: int = 0


class EventChannel:
    """Broadcasts domain events to every connected session."""

    def __init__(self, registry: SessionRegistry | None = None, queue_size: int = 256):
        self.registry = registry or SessionRegistry()
        self._queue_size = queue_size
        self._connections: dict[str, ChannelConnection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def has_connection(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def connect(self, user_id: UUID | None = None) -> ChannelConnection:
        connection = ChannelConnection(
            connection_id=uuid4().hex,
            queue=asyncio.Queue(maxsize=self._queue_size),
            user_id=user_id,
        )
        self._connections[connection.connection_id] = connection
        logger.info(
            "Realtime connection opened",
            extra={"connection_id": connection.connection_id, "user_id": user_id},
        )
        return connection

    def disconnect(self, connection_id: str) -> None:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        self.registry.drop_connection(connection_id)
        _force_put(connection.queue, _CLOSED)
        logger.info(
            "Realtime connection closed",
            extra={"connection_id": connection_id, "user_id": connection.user_id},
        )

    def publish(self, message: CamelModel) -> int:
        """Queue one event for every connection. Returns how many connections got it."""
        envelope = to_wire(message)
        delivered = 0
        for connection in list(self._connections.values()):
            try:
                connection.queue.put_nowait(envelope)
                delivered += 1
            except asyncio.QueueFull:
                connection.dropped += 1
                logger.warning(
                    "Realtime queue full, event dropped",
                    extra={
                        "connection_id": connection.connection_id,
                        "event_type": envelope["type"],
                    },
                )
        logger.debug(
            "Event published",
            extra={"event_type": envelope["type"], "delivered": delivered},
        )
        return delivered

    async def stream(
        self, connection: ChannelConnection, heartbeat_seconds: float | None = None,
    ) -> AsyncIterator[dict | None]:
        """Yield queued envelopes until the connection is closed.

        Yields HEARTBEAT (None) whenever heartbeat_seconds pass without an event.
        """
        while True:
            try:
                if heartbeat_seconds:
                    item = await asyncio.wait_for(
                        connection.queue.get(), timeout=heartbeat_seconds,
                    )
                else:
                    item = await connection.queue.get()
            except asyncio.TimeoutError:
                yield HEARTBEAT
                continue
            if item is _CLOSED:
                return
            yield item

    def join(self, connection_id: str, post_id: UUID) -> bool:
        self._require_connection(connection_id)
        joined = self.registry.join(connection_id, post_id)
        if joined:
            logger.info(
                "Joined post room",
                extra={"connection_id": connection_id, "post_id": post_id},
            )
        return joined

    def leave(self, connection_id: str, post_id: UUID) -> bool:
        self._require_connection(connection_id)
        left = self.registry.leave(connection_id, post_id)
        if left:
            logger.info(
                "Left post room",
                extra={"connection_id": connection_id, "post_id": post_id},
            )
        return left

    def close_all(self) -> None:
        for connection_id in list(self._connections):
            self.disconnect(connection_id)

    def stats(self) -> dict:
        return {
            "connections": self.connection_count,
            "rooms": {
                str(post_id): size
                for post_id, size in self.registry.room_sizes().items()
            },
        }

    def _require_connection(self, connection_id: str) -> None:
        if connection_id not in self._connections:
            raise ResourceNotFoundError(
                "Connection", connection_id,
                context=ErrorContext(connection_id=connection_id),
            )


def _force_put(queue: asyncio.Queue, item: object) -> None:
    """Put item, evicting the oldest entry if the queue is full."""
    while True:
        try:
            queue.put_nowait(item)
            return
        except asyncio.QueueFull:
            queue.get_nowait()


# Singleton (initialized on startup)
event_channel: EventChannel | None = None


def init_event_channel(queue_size: int = 256) -> EventChannel:
    global event_channel
    event_channel = EventChannel(SessionRegistry(), queue_size=queue_size)
    return event_channel


def close_event_channel() -> None:
    global event_channel
    if event_channel:
        event_channel.close_all()
    event_channel = None


def get_event_channel() -> EventChannel:
    """FastAPI dependency for the event channel."""
    if not event_channel:
        raise RuntimeError("Event channel not initialized")
    return event_channel
