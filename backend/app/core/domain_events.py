"""Domain Events - the tagged union of committed state changes.

Invariants:
    - Exactly six variants, one per EventType
    - Every variant carries actor_id (the user whose mutation produced it), None when unknown
    - Events are immutable once built

Design Decisions:
    - Frozen dataclasses dispatched by type, not dicts keyed by name: the reconciler
      never sees an unvalidated payload (schemas/events.py validates the wire form)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Union
from uuid import UUID

from app.core.domain_types import EventType
from app.core.post_views import CommentView, PostView


@dataclass(frozen=True)
class PostCreated:
    post: PostView
    actor_id: UUID | None = None
    event_type = EventType.POST_CREATED


@dataclass(frozen=True)
class PostUpdated:
    post: PostView
    actor_id: UUID | None = None
    event_type = EventType.POST_UPDATED


@dataclass(frozen=True)
class PostDeleted:
    post_id: UUID
    actor_id: UUID | None = None
    event_type = EventType.POST_DELETED


@dataclass(frozen=True)
class PostLiked:
    """Authoritative like count after a toggle. is_liked is the actor's new state."""
    post_id: UUID
    like_count: int
    is_liked: bool
    actor_id: UUID | None = None
    occurred_at: datetime | None = None
    event_type = EventType.POST_LIKED


@dataclass(frozen=True)
class CommentAdded:
    post_id: UUID
    comment: CommentView
    actor_id: UUID | None = None
    event_type = EventType.COMMENT_ADDED


@dataclass(frozen=True)
class CommentDeleted:
    post_id: UUID
    comment_id: UUID
    actor_id: UUID | None = None
    event_type = EventType.COMMENT_DELETED


DomainEvent = Union[
    PostCreated, PostUpdated, PostDeleted, PostLiked, CommentAdded, CommentDeleted,
]

SELF_SUPPRESSED_EVENTS: tuple[type, ...] = (CommentAdded, CommentDeleted)
