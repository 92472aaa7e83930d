"""Client Factory - wires the synchronization client stack from settings.

Invariants:
    - One store, one REST client, one event transport per stack
    - sign_in/sign_out keep the REST credential and the event stream on the same session
    - aclose() stops the sync client before closing the HTTP clients it uses

Design Decisions:
    - Settings drive every network knob (base URL, timeouts, retry budget, backoff);
      http_transport is the only seam, so tests swap in httpx.MockTransport
"""

from dataclasses import dataclass
from typing import Callable

import httpx

from app.config import Settings, get_settings
from app.core.repository_protocols import AuthSession
from app.infrastructure.api_client import BlogApiClient
from app.infrastructure.event_stream_client import SSEEventTransport
from app.services.notifications import Notification, NotificationCenter
from app.services.post_commands import PostCommands
from app.services.posts_store import PostsStore
from app.services.sync_client import SyncClient


@dataclass
class ClientStack:
    store: PostsStore
    api: BlogApiClient
    transport: SSEEventTransport
    notifications: NotificationCenter
    commands: PostCommands
    sync: SyncClient

    async def sign_in(self, session: AuthSession) -> None:
        self.api.set_token(session.token)
        await self.sync.on_authentication_changed(session)

    async def sign_out(self) -> None:
        self.api.set_token(None)
        await self.sync.on_authentication_changed(None)

    async def aclose(self) -> None:
        await self.sync.close()
        await self.transport.aclose()
        await self.api.aclose()


def build_client_stack(
    settings: Settings | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
    notification_sink: Callable[[Notification], None] | None = None,
) -> ClientStack:
    """Build store, REST commands and sync client against settings.api_base_url."""
    settings = settings or get_settings()
    store = PostsStore()
    notifications = NotificationCenter(sink=notification_sink)
    api = BlogApiClient(
        settings.api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
        transport=http_transport,
    )
    transport = SSEEventTransport(
        settings.api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
        transport=http_transport,
    )
    sync = SyncClient(
        transport, store, notifications,
        max_attempts=settings.sync_max_reconnect_attempts,
        base_delay_ms=settings.sync_base_delay_ms,
        max_delay_ms=settings.sync_max_delay_ms,
    )
    return ClientStack(
        store=store,
        api=api,
        transport=transport,
        notifications=notifications,
        commands=PostCommands(api, store),
        sync=sync,
    )
