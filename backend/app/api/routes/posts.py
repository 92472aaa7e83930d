"""Posts API - the REST mutation layer: posts, likes, and comments.

Invariants:
    - Every successful mutation commits first, then publishes exactly one event
    - A failed mutation (validation, 401, 403, 404, database) publishes nothing
    - Ownership (author or admin) enforced for update/delete post and delete comment
    - Like toggles are per (user, post); like_count in responses and events is the committed count
    - GET /{post_id} increments views without touching updated_at

Design Decisions:
    - Events carry the full post snapshot for create/update so clients never refetch
    - Tag filter matches the JSON-encoded tag inside the serialized list: works on both
      PostgreSQL JSON and SQLite text storage
"""

import json
import logging
import math
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, cast, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_current_user
from app.api.routes.post_helpers import (
    comment_to_response, default_excerpt, find_comment, get_post_or_404,
    load_post, post_to_response, publish_event, require_owner,
)
from app.config import get_settings
from app.core.errors import ErrorContext, ResourceNotFoundError
from app.infrastructure.database import get_db
from app.infrastructure.event_channel import EventChannel, get_event_channel
from app.models.comment import Comment
from app.models.like import PostLike
from app.models.post import Post
from app.models.user import User
from app.schemas.events import (
    CommentAddedMessage, CommentDeletedMessage, PostCreatedMessage,
    PostDeletedMessage, PostLikedMessage, PostUpdatedMessage,
)
from app.schemas.post import (
    CommentCreate, CommentResponse, LikeToggleResponse, MessageResponse,
    PaginationInfo, PostCreate, PostListResponse, PostResponse, PostUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/posts", tags=["posts"])

_settings = get_settings()


# --- Reads ---------------------------------------------------------------------

@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(
        _settings.default_page_size, ge=1, le=_settings.max_page_size,
    ),
    search: str | None = Query(None),
    tag: str | None = Query(None),
    published: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """List posts, newest first. published=false includes drafts."""
    filters = []
    if published:
        filters.append(Post.published.is_(True))
    if search:
        filters.append(or_(
            Post.title.icontains(search, autoescape=True),
            Post.content.icontains(search, autoescape=True),
            Post.excerpt.icontains(search, autoescape=True),
        ))
    if tag:
        filters.append(
            cast(Post.tags, String).contains(json.dumps(tag), autoescape=True),
        )
    return await _paginate(db, filters, page, limit)


@router.get("/my-posts", response_model=PostListResponse)
async def list_my_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(
        _settings.default_page_size, ge=1, le=_settings.max_page_size,
    ),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's posts, drafts included."""
    return await _paginate(db, [Post.author_id == user.id], page, limit)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: UUID, db: AsyncSession = Depends(get_db)):
    """Get one post and count the view."""
    await get_post_or_404(db, post_id)
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(views=Post.views + 1, updated_at=Post.updated_at),
    )
    await db.commit()
    return post_to_response(await load_post(db, post_id))


# --- Post mutations ------------------------------------------------------------

@router.post(
    "", response_model=PostResponse, status_code=status.HTTP_201_CREATED,
)
async def create_post(
    body: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Create a post and broadcast postCreated."""
    post = Post(
        title=body.title,
        content=body.content,
        excerpt=body.excerpt or default_excerpt(
            body.content, get_settings().excerpt_length,
        ),
        image_url=body.image_url,
        tags=list(body.tags),
        published=body.published,
        author_id=user.id,
    )
    db.add(post)
    await db.commit()
    response = post_to_response(await load_post(db, post.id))
    logger.info(
        "Post created", extra={"post_id": post.id, "user_id": user.id},
    )
    publish_event(channel, PostCreatedMessage(post=response, actor_id=user.id))
    return response


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: UUID,
    body: PostUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Update a post (author or admin) and broadcast postUpdated."""
    post = await get_post_or_404(db, post_id)
    require_owner(post.author_id, user, "update this post")

    post.title = body.title
    post.content = body.content
    if body.excerpt is not None:
        post.excerpt = body.excerpt
    if body.image_url is not None:
        post.image_url = body.image_url
    if body.tags is not None:
        post.tags = list(body.tags)
    if body.published is not None:
        post.published = body.published
    await db.commit()

    response = post_to_response(await load_post(db, post_id))
    logger.info("Post updated", extra={"post_id": post_id, "user_id": user.id})
    publish_event(channel, PostUpdatedMessage(post=response, actor_id=user.id))
    return response


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Delete a post (author or admin) and broadcast postDeleted."""
    post = await get_post_or_404(db, post_id)
    require_owner(post.author_id, user, "delete this post")
    await db.delete(post)
    await db.commit()
    logger.info("Post deleted", extra={"post_id": post_id, "user_id": user.id})
    publish_event(channel, PostDeletedMessage(id=post_id, actor_id=user.id))
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Like or unlike a post for the caller and broadcast postLiked.

    The like row is inserted or deleted directly. When a concurrent toggle from the
    same user inserted the row first, the unique constraint rejects ours and the
    committed like stands.
    """
    await get_post_or_404(db, post_id)
    if await _find_like(db, post_id, user.id) is not None:
        await db.execute(
            delete(PostLike)
            .where(PostLike.post_id == post_id, PostLike.user_id == user.id),
        )
    else:
        db.add(PostLike(post_id=post_id, user_id=user.id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(
            "Concurrent like toggle lost the insert race",
            extra={"post_id": post_id, "user_id": user.id},
        )

    post = await get_post_or_404(db, post_id)
    mine = next((like for like in post.likes if like.user_id == user.id), None)
    is_liked = mine is not None
    publish_event(channel, PostLikedMessage(
        post_id=post_id,
        like_count=post.like_count,
        is_liked=is_liked,
        actor_id=user.id,
        occurred_at=mine.created_at if mine else None,
    ))
    return LikeToggleResponse(like_count=post.like_count, is_liked=is_liked)


# --- Comments ------------------------------------------------------------------

@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: UUID,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Append a comment and broadcast commentAdded."""
    await get_post_or_404(db, post_id)
    comment = Comment(post_id=post_id, user_id=user.id, content=body.content)
    db.add(comment)
    await db.commit()

    post = await load_post(db, post_id)
    response = comment_to_response(find_comment(post, comment.id))
    logger.info(
        "Comment added", extra={"post_id": post_id, "user_id": user.id},
    )
    publish_event(channel, CommentAddedMessage(
        post_id=post_id, comment=response, actor_id=user.id,
    ))
    return response


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    channel: EventChannel = Depends(get_event_channel),
):
    """Remove a comment (its author or admin) and broadcast commentDeleted."""
    post = await get_post_or_404(db, post_id)
    comment = find_comment(post, comment_id)
    if comment is None:
        raise ResourceNotFoundError(
            "Comment", str(comment_id), context=ErrorContext(post_id=str(post_id)),
        )
    require_owner(comment.user_id, user, "delete this comment")
    post.comments.remove(comment)
    await db.commit()
    logger.info(
        "Comment deleted", extra={"post_id": post_id, "user_id": user.id},
    )
    publish_event(channel, CommentDeletedMessage(
        post_id=post_id, comment_id=comment_id, actor_id=user.id,
    ))
    return MessageResponse(message="Comment deleted successfully")


# --- Helpers -------------------------------------------------------------------

async def _paginate(
    db: AsyncSession, filters: list, page: int, limit: int,
) -> PostListResponse:
    total = await db.scalar(
        select(func.count()).select_from(Post).where(*filters),
    )
    result = await db.execute(
        select(Post)
        .where(*filters)
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit),
    )
    posts = result.scalars().all()
    return PostListResponse(
        data=[post_to_response(p) for p in posts],
        pagination=PaginationInfo(
            page=page, limit=limit, total=total or 0,
            pages=math.ceil((total or 0) / limit),
        ),
    )


async def _find_like(db: AsyncSession, post_id: UUID, user_id: UUID) -> UUID | None:
    return await db.scalar(
        select(PostLike.id)
        .where(PostLike.post_id == post_id, PostLike.user_id == user_id),
    )
