"""Post Commands - REST calls whose outcomes are folded into the client store.

Invariants:
    - Each command dispatches its outcome action only after the REST call succeeded
    - Failures dispatch RequestFailed (message, code, itemized details) and re-raise
    - A 404 marks the state as needing a refetch (the post was deleted elsewhere)
    - Fetch and post-mutation commands dispatch RequestStarted first; likes and
      comments do not toggle the loading flag

Design Decisions:
    - One method per REST operation, so the UI layer never talks to PostsApi directly
"""

import logging
from uuid import UUID

from app.core.errors import BlogError, ResourceNotFoundError, ValidationFailedError
from app.core.post_views import CommentView, PostView
from app.core.posts_actions import (
    CommentAddedLocally, CommentDeletedLocally, FiltersChanged, LikeToggled,
    MyPostsFetched, PostCreatedLocally, PostDeletedLocally, PostFetched,
    PostsFetched, PostUpdatedLocally, RequestFailed, RequestStarted,
)
from app.core.repository_protocols import LikeState, PostDraft, PostPage, PostsApi
from app.services.posts_store import PostsStore

logger = logging.getLogger(__name__)


class PostCommands:
    """Runs REST operations and records their outcomes in the store."""

    def __init__(self, api: PostsApi, store: PostsStore):
        self.api = api
        self.store = store

    async def fetch_posts(
        self, *, page: int = 1, limit: int = 10,
        search: str | None = None, tag: str | None = None, published: bool = True,
    ) -> PostPage:
        self.store.dispatch(FiltersChanged(
            search=search or "", tag=tag or "", published=published,
        ))
        self.store.dispatch(RequestStarted())
        try:
            result = await self.api.list_posts(
                page=page, limit=limit, search=search, tag=tag, published=published,
            )
        except BlogError as exc:
            self._failed(exc, "Failed to fetch posts")
            raise
        self.store.dispatch(PostsFetched(
            posts=result.posts, page=result.page, limit=result.limit,
            total=result.total, pages=result.pages,
        ))
        return result

    async def fetch_post(self, post_id: UUID) -> PostView:
        self.store.dispatch(RequestStarted())
        try:
            post = await self.api.get_post(post_id)
        except BlogError as exc:
            self._failed(exc, "Failed to fetch post")
            raise
        self.store.dispatch(PostFetched(post=post))
        return post

    async def fetch_my_posts(self, *, page: int = 1, limit: int = 10) -> PostPage:
        self.store.dispatch(RequestStarted())
        try:
            result = await self.api.list_my_posts(page=page, limit=limit)
        except BlogError as exc:
            self._failed(exc, "Failed to fetch my posts")
            raise
        self.store.dispatch(MyPostsFetched(posts=result.posts))
        return result

    async def create_post(self, draft: PostDraft) -> PostView:
        self.store.dispatch(RequestStarted())
        try:
            post = await self.api.create_post(draft)
        except BlogError as exc:
            self._failed(exc, "Failed to create post")
            raise
        self.store.dispatch(PostCreatedLocally(post=post))
        return post

    async def update_post(self, post_id: UUID, draft: PostDraft) -> PostView:
        self.store.dispatch(RequestStarted())
        try:
            post = await self.api.update_post(post_id, draft)
        except BlogError as exc:
            self._failed(exc, "Failed to update post")
            raise
        self.store.dispatch(PostUpdatedLocally(post=post))
        return post

    async def delete_post(self, post_id: UUID) -> None:
        self.store.dispatch(RequestStarted())
        try:
            await self.api.delete_post(post_id)
        except BlogError as exc:
            self._failed(exc, "Failed to delete post")
            raise
        self.store.dispatch(PostDeletedLocally(post_id=post_id))

    async def toggle_like(self, post_id: UUID) -> LikeState:
        try:
            result = await self.api.toggle_like(post_id)
        except BlogError as exc:
            self._failed(exc, "Failed to toggle like")
            raise
        self.store.dispatch(LikeToggled(
            post_id=post_id, like_count=result.like_count, is_liked=result.is_liked,
        ))
        return result

    async def add_comment(self, post_id: UUID, content: str) -> CommentView:
        try:
            comment = await self.api.add_comment(post_id, content)
        except BlogError as exc:
            self._failed(exc, "Failed to add comment")
            raise
        self.store.dispatch(CommentAddedLocally(post_id=post_id, comment=comment))
        return comment

    async def delete_comment(self, post_id: UUID, comment_id: UUID) -> None:
        try:
            await self.api.delete_comment(post_id, comment_id)
        except BlogError as exc:
            self._failed(exc, "Failed to delete comment")
            raise
        self.store.dispatch(CommentDeletedLocally(post_id=post_id, comment_id=comment_id))

    def _failed(self, exc: BlogError, fallback: str) -> None:
        logger.warning(
            f"{fallback}: {exc.message}", extra={"error_code": exc.code},
        )
        details = exc.details if isinstance(exc, ValidationFailedError) else []
        self.store.dispatch(RequestFailed(
            message=exc.message or fallback,
            code=exc.code,
            details=tuple(details),
            needs_refetch=isinstance(exc, ResourceNotFoundError),
        ))
