"""Synchronization Client - owns the session's one live event-stream connection.

Invariants:
    - At most one connection per client; connect() while CONNECTING/CONNECTED is a no-op
    - Only authenticated sessions connect; losing authentication disconnects
    - Handshake failures retry with exponential backoff (+-25% jitter) until max_attempts
      consecutive failures, then FAILED with exactly one error notification
    - An unexpected drop while CONNECTED re-enters the retry loop with a fresh counter
    - Every incoming message is validated at the boundary; unusable ones are dropped
    - Joined post rooms are re-joined after every successful (re)connect
    - A connect loop from a superseded generation never touches state again

Design Decisions:
    - One asyncio task per connection attempt cycle; disconnect() cancels it and bumps the
      generation so a loop that is mid-await exits on its next check
    - State machine lives in core/connection_state.py; this module only does IO and timing
"""

import asyncio
import logging
import random
from uuid import UUID

from app.core.connection_state import ConnectionMachine
from app.core.domain_events import CommentAdded, DomainEvent, PostCreated
from app.core.domain_types import (
    ConnectionStatus, MAX_RECONNECT_ATTEMPTS, NotificationLevel,
)
from app.core.errors import ChannelTransportError
from app.core.posts_actions import ViewerChanged
from app.core.reconcile import is_self_action
from app.core.repository_protocols import (
    AuthSession, EventSubscription, EventTransport, Notifier,
)
from app.schemas.events import parse_event_message
from app.services.posts_store import PostsStore

logger = logging.getLogger(__name__)

_CONNECTED_MESSAGE = "Connected to real-time updates"
_DROPPED_MESSAGE = "Disconnected from real-time updates"
_FAILED_MESSAGE = "Failed to connect to real-time updates"


class SyncClient:
    """Keeps the store in step with the server's event channel."""

    def __init__(
        self,
        transport: EventTransport,
        store: PostsStore,
        notifier: Notifier,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
    ):
        self.transport = transport
        self.store = store
        self.notifier = notifier
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.machine = ConnectionMachine(max_attempts=max_attempts)
        self._session: AuthSession | None = None
        self._subscription: EventSubscription | None = None
        self._task: asyncio.Task | None = None
        self._generation = 0
        self._rooms: set[UUID] = set()

    @property
    def status(self) -> ConnectionStatus:
        return self.machine.status

    @property
    def is_connected(self) -> bool:
        return self.machine.status is ConnectionStatus.CONNECTED

    @property
    def connection_id(self) -> str | None:
        return self._subscription.connection_id if self._subscription else None

    @property
    def rooms(self) -> frozenset[UUID]:
        return frozenset(self._rooms)

    # --- Lifecycle -------------------------------------------------------------

    async def on_authentication_changed(self, session: AuthSession | None) -> None:
        """Follow the viewer: connect when signed in, disconnect when signed out."""
        previous = self._session
        self._session = session
        self.store.dispatch(ViewerChanged(viewer_id=session.user_id if session else None))
        if session is None:
            await self.disconnect()
            return
        if previous is not None and previous.token != session.token:
            await self.disconnect()
        await self.connect()

    async def connect(self) -> None:
        if self._session is None:
            logger.debug("connect() ignored: no authenticated session")
            return
        if not self.machine.begin_connect():
            return
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation))

    async def disconnect(self) -> None:
        """Stop the connection on purpose. No notification is raised."""
        self._generation += 1
        self.machine.close()
        task, self._task = self._task, None
        subscription, self._subscription = self._subscription, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if subscription is not None:
            await subscription.close()

    async def close(self) -> None:
        """Unmount: disconnect and forget joined rooms."""
        await self.disconnect()
        self._rooms.clear()

    async def wait_closed(self) -> None:
        """Wait until the current connect loop exits (FAILED or disconnected)."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    # --- Rooms -----------------------------------------------------------------

    async def join_post(self, post_id: UUID) -> None:
        self._rooms.add(post_id)
        if self.is_connected and self._subscription is not None:
            await self._forward_room(self._subscription.join_room, post_id, "join")

    async def leave_post(self, post_id: UUID) -> None:
        self._rooms.discard(post_id)
        if self.is_connected and self._subscription is not None:
            await self._forward_room(self._subscription.leave_room, post_id, "leave")

    async def _forward_room(self, call, post_id: UUID, verb: str) -> None:
        try:
            await call(post_id)
        except ChannelTransportError as exc:
            logger.warning(
                f"Failed to {verb} post room: {exc.message}",
                extra={"post_id": post_id, "connection_id": self.connection_id},
            )

    # --- Connect loop ----------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int) -> None:
        while self._is_current(generation):
            subscription = await self._handshake(generation)
            if subscription is None:
                return
            if not await self._listen(generation, subscription):
                return

    async def _handshake(self, generation: int) -> EventSubscription | None:
        """Retry until connected, FAILED, or superseded."""
        while self._is_current(generation):
            try:
                subscription = await self.transport.open(
                    self._session.token if self._session else None,
                )
            except ChannelTransportError as exc:
                if not self._is_current(generation):
                    return None
                status = self.machine.handshake_failed()
                logger.warning(
                    f"Event stream handshake failed: {exc.message}",
                    extra={"attempt": self.machine.attempts},
                )
                if status is ConnectionStatus.FAILED:
                    self.notifier.notify(NotificationLevel.ERROR, _FAILED_MESSAGE)
                    return None
                await asyncio.sleep(self._backoff(self.machine.attempts - 1) / 1000)
                continue

            if not self._is_current(generation):
                await subscription.close()
                return None
            self.machine.handshake_succeeded()
            self._subscription = subscription
            logger.info(
                "Event stream connected",
                extra={"connection_id": subscription.connection_id},
            )
            self.notifier.notify(NotificationLevel.SUCCESS, _CONNECTED_MESSAGE)
            for post_id in list(self._rooms):
                await self._forward_room(subscription.join_room, post_id, "join")
            return subscription
        return None

    async def _listen(self, generation: int, subscription: EventSubscription) -> bool:
        """Consume messages. Returns True when the stream dropped unexpectedly."""
        try:
            async for raw in subscription.messages():
                if not self._is_current(generation):
                    return False
                self._handle_message(raw)
        except ChannelTransportError as exc:
            logger.warning(
                f"Event stream error: {exc.message}",
                extra={"connection_id": subscription.connection_id},
            )
        if not self._is_current(generation):
            return False

        self._subscription = None
        await subscription.close()
        self.machine.connection_lost()
        logger.warning(
            "Event stream dropped, reconnecting",
            extra={"connection_id": subscription.connection_id},
        )
        self.notifier.notify(NotificationLevel.WARNING, _DROPPED_MESSAGE)
        return True

    def _handle_message(self, raw: object) -> None:
        event = parse_event_message(raw)
        if event is None:
            return
        foreign = not self.store.select(lambda state: is_self_action(state, event))
        self.store.dispatch(event)
        self._notify_for(event, foreign)

    def _notify_for(self, event: DomainEvent, foreign: bool) -> None:
        if isinstance(event, PostCreated):
            self.notifier.notify(
                NotificationLevel.INFO,
                f'New post: "{event.post.title}" by {event.post.author.name}',
            )
        elif isinstance(event, CommentAdded) and foreign:
            self.notifier.notify(
                NotificationLevel.INFO,
                f"New comment by {event.comment.user.name}",
            )

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with +-25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
