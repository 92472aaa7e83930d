"""Post Route Helpers - loading, ownership checks, and ORM-to-wire conversion for posts.py.

Invariants:
    - load_post() always re-reads author, likes, and comments (populate_existing)
      so responses built right after a commit reflect the committed rows
    - Ownership: the author or an administrator, nobody else
    - publish_event() is only called by routes after db.commit() has returned
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorContext, NotAuthorizedError, ResourceNotFoundError
from app.infrastructure.event_channel import EventChannel
from app.models.comment import Comment
from app.models.post import Post
from app.models.user import User
from app.schemas.post import (
    AuthorSnapshot, CamelModel, CommentResponse, LikeEntry, PostResponse,
)

logger = logging.getLogger(__name__)


async def load_post(db: AsyncSession, post_id: UUID) -> Post | None:
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def get_post_or_404(db: AsyncSession, post_id: UUID) -> Post:
    """Get post or raise 404."""
    post = await load_post(db, post_id)
    if post is None:
        raise ResourceNotFoundError(
            "Post", str(post_id), context=ErrorContext(post_id=str(post_id)),
        )
    return post


def require_owner(owner_id: UUID, user: User, action: str) -> None:
    if owner_id != user.id and not user.is_admin:
        raise NotAuthorizedError(
            action, context=ErrorContext(user_id=str(user.id)),
        )


def default_excerpt(content: str, length: int) -> str:
    """First `length` characters, with an ellipsis when the content is longer."""
    if len(content) <= length:
        return content
    return content[:length] + "..."


def find_comment(post: Post, comment_id: UUID) -> Comment | None:
    return next((c for c in post.comments if c.id == comment_id), None)


# --- ORM -> wire ---------------------------------------------------------------

def author_to_snapshot(user: User) -> AuthorSnapshot:
    return AuthorSnapshot(id=user.id, name=user.name, avatar=user.avatar)


def comment_to_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        user=author_to_snapshot(comment.user),
        content=comment.content,
        created_at=comment.created_at,
    )


def post_to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        excerpt=post.excerpt,
        image_url=post.image_url,
        author=author_to_snapshot(post.author),
        tags=list(post.tags or []),
        published=post.published,
        views=post.views,
        likes=[
            LikeEntry(user=like.user_id, created_at=like.created_at)
            for like in post.likes
        ],
        comments=[comment_to_response(c) for c in post.comments],
        like_count=post.like_count,
        comment_count=post.comment_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


def publish_event(channel: EventChannel, message: CamelModel) -> None:
    """Broadcast a committed mutation. Never fails the request that caused it."""
    try:
        channel.publish(message)
    except Exception as exc:
        logger.error(
            f"Failed to publish event: {exc}",
            extra={"event_type": message.type},
            exc_info=True,
        )
