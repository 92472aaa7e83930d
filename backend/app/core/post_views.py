"""Post Views - client-side projection of the Post aggregate.

Invariants:
    - like_count == len(likes) and comment_count == len(comments) after every reconcile step
    - A user appears at most once in likes
    - comments keep insertion order

Design Decisions:
    - Plain mutable dataclasses, no pydantic: core stays free of boundary libraries;
      schemas/post.py converts wire payloads into these views
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass
class AuthorRef:
    """Author snapshot embedded in posts and comments."""
    id: UUID
    name: str
    avatar: str | None = None


@dataclass
class LikeRecord:
    user_id: UUID
    created_at: datetime


@dataclass
class CommentView:
    id: UUID
    user: AuthorRef
    content: str
    created_at: datetime


@dataclass
class PostView:
    """One post as held by the client store."""
    id: UUID
    title: str
    content: str
    excerpt: str
    author: AuthorRef
    created_at: datetime
    updated_at: datetime
    image_url: str | None = None
    tags: list[str] = field(default_factory=list)
    published: bool = False
    views: int = 0
    likes: list[LikeRecord] = field(default_factory=list)
    comments: list[CommentView] = field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0

    def is_liked_by(self, user_id: UUID | None) -> bool:
        if user_id is None:
            return False
        return any(like.user_id == user_id for like in self.likes)

    def has_comment(self, comment_id: UUID) -> bool:
        return any(c.id == comment_id for c in self.comments)
