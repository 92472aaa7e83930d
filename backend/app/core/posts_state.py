"""Client Posts State - the client-held projection of posts, plus read-only selectors.

Invariants:
    - Three views over Post: posts (all-posts list), current_post, my_posts
    - A post present in several views has identical field values in each (held as distinct copies)
    - Only core/reconcile.py mutates this dataclass; everything else reads through selectors

Design Decisions:
    - Pure dataclass, no IO: the store (services/posts_store.py) owns the single instance
"""

from dataclasses import dataclass, field
from uuid import UUID

from app.core.post_views import CommentView, PostView


@dataclass
class Pagination:
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 0


@dataclass
class PostFilters:
    search: str = ""
    tag: str = ""
    published: bool = True


@dataclass
class ClientPostsState:
    """Process-wide client store contents - pure dataclass, no IO."""

    # === Views ===
    posts: list[PostView] = field(default_factory=list)
    current_post: PostView | None = None
    my_posts: list[PostView] = field(default_factory=list)

    # === Identity (drives self-action suppression) ===
    viewer_id: UUID | None = None

    # === Request status ===
    is_loading: bool = False
    error: str | None = None
    error_code: str | None = None
    error_details: list[dict] = field(default_factory=list)
    needs_refetch: bool = False

    pagination: Pagination = field(default_factory=Pagination)
    filters: PostFilters = field(default_factory=PostFilters)


# --- Selectors -----------------------------------------------------------------

def copies_of(state: ClientPostsState, post_id: UUID) -> list[PostView]:
    """Every view object currently holding post_id, each object listed once."""
    found: list[PostView] = []
    candidates = [*state.posts, *state.my_posts]
    if state.current_post is not None:
        candidates.append(state.current_post)
    for post in candidates:
        if post.id == post_id and not any(post is seen for seen in found):
            found.append(post)
    return found


def find_post(state: ClientPostsState, post_id: UUID) -> PostView | None:
    copies = copies_of(state, post_id)
    return copies[0] if copies else None


def visible_comments(post: PostView) -> list[CommentView]:
    """Comments deduplicated by id for display.

    First occurrence keeps its position; a later duplicate replaces its value.
    """
    order: list[UUID] = []
    by_id: dict[UUID, CommentView] = {}
    for comment in post.comments:
        if comment.id not in by_id:
            order.append(comment.id)
        by_id[comment.id] = comment
    return [by_id[comment_id] for comment_id in order]


def is_liked_by_viewer(state: ClientPostsState, post_id: UUID) -> bool:
    post = find_post(state, post_id)
    return post is not None and post.is_liked_by(state.viewer_id)
