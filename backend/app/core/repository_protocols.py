"""Boundary Protocols - contracts between the client core and its shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO (REST calls, event stream, user notifications) accessed through Protocol types
    - Implementations provided by the shell via constructor injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      but the reconciler that consumes their results is never async itself
"""

from dataclasses import dataclass
from typing import AsyncIterator, Protocol
from uuid import UUID

from app.core.domain_types import NotificationLevel
from app.core.post_views import CommentView, PostView


@dataclass(frozen=True)
class AuthSession:
    """The authenticated viewer as seen by the client: identity plus bearer credential."""
    user_id: UUID
    name: str
    token: str


@dataclass(frozen=True)
class PostPage:
    posts: tuple[PostView, ...]
    page: int
    limit: int
    total: int
    pages: int


@dataclass(frozen=True)
class LikeState:
    like_count: int
    is_liked: bool


@dataclass(frozen=True)
class PostDraft:
    """Fields sent on create/update. None means "leave unchanged" on update."""
    title: str
    content: str
    excerpt: str | None = None
    image_url: str | None = None
    tags: tuple[str, ...] | None = None
    published: bool | None = None


class EventSubscription(Protocol):
    """One live event-stream connection."""
    connection_id: str

    def messages(self) -> AsyncIterator[dict]: ...
    async def join_room(self, post_id: UUID) -> None: ...
    async def leave_room(self, post_id: UUID) -> None: ...
    async def close(self) -> None: ...


class EventTransport(Protocol):
    """Opens event-stream connections; raises ChannelTransportError on handshake failure."""
    async def open(self, token: str | None) -> EventSubscription: ...


class PostsApi(Protocol):
    """REST mutation layer as consumed by the client."""
    async def list_posts(
        self, *, page: int = 1, limit: int = 10,
        search: str | None = None, tag: str | None = None, published: bool = True,
    ) -> PostPage: ...
    async def list_my_posts(self, *, page: int = 1, limit: int = 10) -> PostPage: ...
    async def get_post(self, post_id: UUID) -> PostView: ...
    async def create_post(self, draft: PostDraft) -> PostView: ...
    async def update_post(self, post_id: UUID, draft: PostDraft) -> PostView: ...
    async def delete_post(self, post_id: UUID) -> None: ...
    async def toggle_like(self, post_id: UUID) -> LikeState: ...
    async def add_comment(self, post_id: UUID, content: str) -> CommentView: ...
    async def delete_comment(self, post_id: UUID, comment_id: UUID) -> None: ...


class Notifier(Protocol):
    """User-visible notifications (toasts)."""
    def notify(self, level: NotificationLevel, message: str) -> None: ...
