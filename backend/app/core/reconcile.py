"""Reconciler - folds domain events and REST outcomes into ClientPostsState.

Invariants:
    - Self-action suppression: CommentAdded/CommentDeleted whose actor_id equals the viewer are
      NOT applied (the acting tab already applied its REST response). Post and like events
      are applied unconditionally so the actor's other tabs converge
    - Convergence: every handler touching a post updates ALL views holding a copy of it
    - Counter integrity: like_count only from the authoritative count in the action;
      comment_count recomputed from the comment list right after the list changes
    - Never raises on unknown actions (returns False)

Design Decisions:
    - Explicit dict from action type to handler: every mapping visible in one place
    - Views hold deep copies, so one view's mutation can't leak into another; copies_of()
      also dedupes by identity so a shared object is never mutated twice
"""

import copy
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from app.core.domain_events import (
    SELF_SUPPRESSED_EVENTS,
    CommentAdded, CommentDeleted,
    PostCreated, PostDeleted, PostLiked, PostUpdated,
)
from app.core.post_views import CommentView, LikeRecord, PostView
from app.core.posts_actions import (
    Action,
    CommentAddedLocally, CommentDeletedLocally,
    CurrentPostCleared, ErrorCleared, FiltersChanged, LikeToggled,
    MyPostsFetched, PostCreatedLocally, PostDeletedLocally, PostFetched,
    PostsFetched, PostUpdatedLocally, RequestFailed, RequestStarted,
    ViewerChanged,
)
from app.core.posts_state import ClientPostsState, Pagination, copies_of


def reconcile(state: ClientPostsState, action: Action) -> bool:
    """Apply one action to state in place. Returns True when state changed."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return False
    return handler(state, action)


def is_self_action(state: ClientPostsState, action: Action) -> bool:
    """Whether a broadcast event is the viewer's own action echoed back."""
    if not isinstance(action, SELF_SUPPRESSED_EVENTS):
        return False
    return state.viewer_id is not None and action.actor_id == state.viewer_id


# --- View helpers --------------------------------------------------------------

def _upsert_front(views: list[PostView], post: PostView) -> None:
    """Replace in place when present, else insert at the front."""
    for i, existing in enumerate(views):
        if existing.id == post.id:
            views[i] = copy.deepcopy(post)
            return
    views.insert(0, copy.deepcopy(post))


def _replace_in(views: list[PostView], post: PostView) -> bool:
    changed = False
    for i, existing in enumerate(views):
        if existing.id == post.id:
            views[i] = copy.deepcopy(post)
            changed = True
    return changed


def _replace_current(state: ClientPostsState, post: PostView) -> bool:
    if state.current_post is not None and state.current_post.id == post.id:
        state.current_post = copy.deepcopy(post)
        return True
    return False


def _replace_everywhere(state: ClientPostsState, post: PostView) -> bool:
    in_posts = _replace_in(state.posts, post)
    in_mine = _replace_in(state.my_posts, post)
    in_current = _replace_current(state, post)
    return in_posts or in_mine or in_current


def _remove_everywhere(state: ClientPostsState, post_id: UUID) -> bool:
    before = len(state.posts) + len(state.my_posts)
    state.posts = [p for p in state.posts if p.id != post_id]
    state.my_posts = [p for p in state.my_posts if p.id != post_id]
    changed = before != len(state.posts) + len(state.my_posts)
    if state.current_post is not None and state.current_post.id == post_id:
        state.current_post = None
        changed = True
    return changed


def _apply_like(
    state: ClientPostsState,
    post_id: UUID,
    like_count: int,
    is_liked: bool,
    actor_id: UUID | None,
    at: datetime | None,
) -> bool:
    copies = copies_of(state, post_id)
    for post in copies:
        if actor_id is not None:
            _set_like(post, actor_id, is_liked, at or datetime.now(timezone.utc))
        post.like_count = like_count
    return bool(copies)


def _set_like(post: PostView, user_id: UUID, is_liked: bool, at: datetime) -> None:
    if is_liked and not post.is_liked_by(user_id):
        post.likes.append(LikeRecord(user_id=user_id, created_at=at))
    elif not is_liked:
        post.likes = [like for like in post.likes if like.user_id != user_id]


def _add_comment(state: ClientPostsState, post_id: UUID, comment: CommentView) -> bool:
    changed = False
    for post in copies_of(state, post_id):
        if post.has_comment(comment.id):
            continue
        post.comments.append(copy.deepcopy(comment))
        post.comment_count = len(post.comments)
        changed = True
    return changed


def _remove_comment(state: ClientPostsState, post_id: UUID, comment_id: UUID) -> bool:
    changed = False
    for post in copies_of(state, post_id):
        for i, comment in enumerate(post.comments):
            if comment.id == comment_id:
                del post.comments[i]
                post.comment_count = len(post.comments)
                changed = True
                break
    return changed


def _settle(state: ClientPostsState) -> None:
    """Request finished successfully."""
    state.is_loading = False
    state.error = None
    state.error_code = None
    state.error_details = []


# --- Domain event handlers -----------------------------------------------------

def _on_post_created(state: ClientPostsState, event: PostCreated) -> bool:
    _upsert_front(state.posts, event.post)
    if state.viewer_id is not None and event.post.author.id == state.viewer_id:
        _upsert_front(state.my_posts, event.post)
    _replace_current(state, event.post)
    return True


def _on_post_updated(state: ClientPostsState, event: PostUpdated) -> bool:
    return _replace_everywhere(state, event.post)


def _on_post_deleted(state: ClientPostsState, event: PostDeleted) -> bool:
    return _remove_everywhere(state, event.post_id)


def _on_post_liked(state: ClientPostsState, event: PostLiked) -> bool:
    return _apply_like(
        state, event.post_id, event.like_count, event.is_liked,
        event.actor_id, event.occurred_at,
    )


def _on_comment_added(state: ClientPostsState, event: CommentAdded) -> bool:
    if is_self_action(state, event):
        return False
    return _add_comment(state, event.post_id, event.comment)


def _on_comment_deleted(state: ClientPostsState, event: CommentDeleted) -> bool:
    if is_self_action(state, event):
        return False
    return _remove_comment(state, event.post_id, event.comment_id)


# --- REST outcome handlers -----------------------------------------------------

def _on_request_started(state: ClientPostsState, action: RequestStarted) -> bool:
    state.is_loading = True
    state.error = None
    state.error_code = None
    state.error_details = []
    return True


def _on_request_failed(state: ClientPostsState, action: RequestFailed) -> bool:
    state.is_loading = False
    state.error = action.message
    state.error_code = action.code
    state.error_details = list(action.details)
    state.needs_refetch = state.needs_refetch or action.needs_refetch
    return True


def _on_posts_fetched(state: ClientPostsState, action: PostsFetched) -> bool:
    state.posts = [copy.deepcopy(p) for p in action.posts]
    for post in action.posts:
        _replace_in(state.my_posts, post)
        _replace_current(state, post)
    state.pagination = Pagination(
        page=action.page, limit=action.limit,
        total=action.total, pages=action.pages,
    )
    state.needs_refetch = False
    _settle(state)
    return True


def _on_post_fetched(state: ClientPostsState, action: PostFetched) -> bool:
    state.current_post = copy.deepcopy(action.post)
    _replace_in(state.posts, action.post)
    _replace_in(state.my_posts, action.post)
    state.needs_refetch = False
    _settle(state)
    return True


def _on_my_posts_fetched(state: ClientPostsState, action: MyPostsFetched) -> bool:
    state.my_posts = [copy.deepcopy(p) for p in action.posts]
    for post in action.posts:
        _replace_in(state.posts, post)
        _replace_current(state, post)
    _settle(state)
    return True


def _on_post_created_locally(state: ClientPostsState, action: PostCreatedLocally) -> bool:
    _upsert_front(state.posts, action.post)
    _upsert_front(state.my_posts, action.post)
    _settle(state)
    return True


def _on_post_updated_locally(state: ClientPostsState, action: PostUpdatedLocally) -> bool:
    _replace_everywhere(state, action.post)
    _settle(state)
    return True


def _on_post_deleted_locally(state: ClientPostsState, action: PostDeletedLocally) -> bool:
    _remove_everywhere(state, action.post_id)
    _settle(state)
    return True


def _on_like_toggled(state: ClientPostsState, action: LikeToggled) -> bool:
    return _apply_like(
        state, action.post_id, action.like_count, action.is_liked,
        state.viewer_id, None,
    )


def _on_comment_added_locally(state: ClientPostsState, action: CommentAddedLocally) -> bool:
    return _add_comment(state, action.post_id, action.comment)


def _on_comment_deleted_locally(state: ClientPostsState, action: CommentDeletedLocally) -> bool:
    return _remove_comment(state, action.post_id, action.comment_id)


def _on_current_post_cleared(state: ClientPostsState, action: CurrentPostCleared) -> bool:
    changed = state.current_post is not None
    state.current_post = None
    return changed


def _on_filters_changed(state: ClientPostsState, action: FiltersChanged) -> bool:
    if action.search is not None:
        state.filters.search = action.search
    if action.tag is not None:
        state.filters.tag = action.tag
    if action.published is not None:
        state.filters.published = action.published
    return True


def _on_error_cleared(state: ClientPostsState, action: ErrorCleared) -> bool:
    changed = state.error is not None
    state.error = None
    state.error_code = None
    state.error_details = []
    return changed


def _on_viewer_changed(state: ClientPostsState, action: ViewerChanged) -> bool:
    changed = state.viewer_id != action.viewer_id
    state.viewer_id = action.viewer_id
    return changed


_HANDLERS: dict[type, Callable[[ClientPostsState, Action], bool]] = {
    # Domain events (realtime)
    PostCreated: _on_post_created,
    PostUpdated: _on_post_updated,
    PostDeleted: _on_post_deleted,
    PostLiked: _on_post_liked,
    CommentAdded: _on_comment_added,
    CommentDeleted: _on_comment_deleted,

    # REST outcomes
    RequestStarted: _on_request_started,
    RequestFailed: _on_request_failed,
    PostsFetched: _on_posts_fetched,
    PostFetched: _on_post_fetched,
    MyPostsFetched: _on_my_posts_fetched,
    PostCreatedLocally: _on_post_created_locally,
    PostUpdatedLocally: _on_post_updated_locally,
    PostDeletedLocally: _on_post_deleted_locally,
    LikeToggled: _on_like_toggled,
    CommentAddedLocally: _on_comment_added_locally,
    CommentDeletedLocally: _on_comment_deleted_locally,

    # Local UI state
    CurrentPostCleared: _on_current_post_cleared,
    FiltersChanged: _on_filters_changed,
    ErrorCleared: _on_error_cleared,
    ViewerChanged: _on_viewer_changed,
}
