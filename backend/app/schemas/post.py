"""Post Schemas - Pydantic models with field-level validation for API boundaries.

Invariants:
    - Wire keys are camelCase (likeCount, imageUrl, createdAt); Python attributes stay snake_case
    - PostCreate/PostUpdate: title 5-200 chars and content >= 10 chars after stripping
    - CommentCreate.content: non-empty after stripping
    - tags accepted as a list or a comma-separated string, always stored as a list
    - to_view() converts wire models into core post views (the only way data enters the client store)

Design Decisions:
    - alias_generator=to_camel + populate_by_name: the same model parses server output
      and is built from ORM attributes by name
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.domain_types import (
    COMMENT_MAX_LENGTH, CONTENT_MIN_LENGTH, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH,
)
from app.core.post_views import AuthorRef, CommentView, LikeRecord, PostView


class CamelModel(BaseModel):
    """Base for every wire model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


# --- Responses -----------------------------------------------------------------

class AuthorSnapshot(CamelModel):
    id: UUID
    name: str
    avatar: str | None = None

    def to_view(self) -> AuthorRef:
        return AuthorRef(id=self.id, name=self.name, avatar=self.avatar)


class LikeEntry(CamelModel):
    user: UUID
    created_at: datetime

    def to_view(self) -> LikeRecord:
        return LikeRecord(user_id=self.user, created_at=self.created_at)


class CommentResponse(CamelModel):
    id: UUID
    user: AuthorSnapshot
    content: str
    created_at: datetime

    def to_view(self) -> CommentView:
        return CommentView(
            id=self.id, user=self.user.to_view(),
            content=self.content, created_at=self.created_at,
        )


class PostResponse(CamelModel):
    """Full post snapshot - REST responses and postCreated/postUpdated payloads."""
    id: UUID
    title: str
    content: str
    excerpt: str = ""
    image_url: str | None = None
    author: AuthorSnapshot
    tags: list[str] = Field(default_factory=list)
    published: bool = False
    views: int = Field(0, ge=0)
    likes: list[LikeEntry] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    like_count: int = Field(0, ge=0)
    comment_count: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime

    def to_view(self) -> PostView:
        return PostView(
            id=self.id,
            title=self.title,
            content=self.content,
            excerpt=self.excerpt,
            image_url=self.image_url,
            author=self.author.to_view(),
            tags=list(self.tags),
            published=self.published,
            views=self.views,
            likes=[like.to_view() for like in self.likes],
            comments=[c.to_view() for c in self.comments],
            like_count=self.like_count,
            comment_count=self.comment_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PaginationInfo(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PostListResponse(CamelModel):
    data: list[PostResponse]
    pagination: PaginationInfo


class LikeToggleResponse(CamelModel):
    like_count: int = Field(ge=0)
    is_liked: bool


class MessageResponse(CamelModel):
    message: str


# --- Requests ------------------------------------------------------------------

def _split_tags(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return value


class PostCreate(CamelModel):
    """Post creation - validates title/content length and whitespace."""
    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=CONTENT_MIN_LENGTH)
    excerpt: str | None = Field(None, max_length=500)
    image_url: str | None = Field(None, max_length=2048)
    tags: list[str] = Field(default_factory=list)
    published: bool = False

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: object) -> object:
        return _split_tags(v) or []


class PostUpdate(CamelModel):
    """Post update - title/content required as on create; None elsewhere keeps the stored value."""
    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=CONTENT_MIN_LENGTH)
    excerpt: str | None = Field(None, max_length=500)
    image_url: str | None = Field(None, max_length=2048)
    tags: list[str] | None = None
    published: bool | None = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: object) -> object:
        return _split_tags(v)


class CommentCreate(CamelModel):
    content: str = Field(max_length=COMMENT_MAX_LENGTH)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content is required")
        return v
