"""Posts Actions - named REST-outcome actions accepted by the reconciler.

Invariants:
    - Together with core/domain_events.DomainEvent these are the ONLY ways to change
      ClientPostsState (PostsStore.dispatch routes every action through reconcile)
    - Actions are immutable value objects

Design Decisions:
    - One action per request outcome, mirroring the client's request lifecycle
      (started / succeeded / failed) instead of a generic "set field" action
"""

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from app.core.domain_events import DomainEvent
from app.core.post_views import CommentView, PostView


# --- Request lifecycle -------------------------------------------------------

@dataclass(frozen=True)
class RequestStarted:
    pass


@dataclass(frozen=True)
class RequestFailed:
    message: str
    code: str | None = None
    details: tuple[dict, ...] = ()
    needs_refetch: bool = False


# --- Fetch results (wholesale replacement) -----------------------------------

@dataclass(frozen=True)
class PostsFetched:
    posts: tuple[PostView, ...]
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 0


@dataclass(frozen=True)
class PostFetched:
    post: PostView


@dataclass(frozen=True)
class MyPostsFetched:
    posts: tuple[PostView, ...]


# --- Mutation results (the acting tab's own reconciliation) ------------------

@dataclass(frozen=True)
class PostCreatedLocally:
    post: PostView


@dataclass(frozen=True)
class PostUpdatedLocally:
    post: PostView


@dataclass(frozen=True)
class PostDeletedLocally:
    post_id: UUID


@dataclass(frozen=True)
class LikeToggled:
    post_id: UUID
    like_count: int
    is_liked: bool


@dataclass(frozen=True)
class CommentAddedLocally:
    post_id: UUID
    comment: CommentView


@dataclass(frozen=True)
class CommentDeletedLocally:
    post_id: UUID
    comment_id: UUID


# --- Local UI state ----------------------------------------------------------

@dataclass(frozen=True)
class CurrentPostCleared:
    pass


@dataclass(frozen=True)
class FiltersChanged:
    search: str | None = None
    tag: str | None = None
    published: bool | None = None


@dataclass(frozen=True)
class ErrorCleared:
    pass


@dataclass(frozen=True)
class ViewerChanged:
    """Authentication changed; viewer_id drives self-action suppression."""
    viewer_id: UUID | None = None


RestOutcome = Union[
    RequestStarted, RequestFailed,
    PostsFetched, PostFetched, MyPostsFetched,
    PostCreatedLocally, PostUpdatedLocally, PostDeletedLocally,
    LikeToggled, CommentAddedLocally, CommentDeletedLocally,
    CurrentPostCleared, FiltersChanged, ErrorCleared, ViewerChanged,
]

Action = Union[RestOutcome, DomainEvent]
