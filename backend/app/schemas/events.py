"""Event Schemas - wire form of domain events, validated at the channel boundary.

Invariants:
    - Wire envelope is {"type": <event name>, "data": {...camelCase payload...}}
    - parse_event_message() never raises: malformed or unknown messages return None
    - Only validated messages are converted into core domain events (to_domain())

Design Decisions:
    - Discriminated union on "type": one TypeAdapter validates every variant
    - Server publishes these models directly, so the producer and the client share one contract
"""

import logging
from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import Field, TypeAdapter, ValidationError

from app.core.domain_events import (
    CommentAdded, CommentDeleted, DomainEvent,
    PostCreated, PostDeleted, PostLiked, PostUpdated,
)
from app.schemas.post import CamelModel, CommentResponse, PostResponse

logger = logging.getLogger(__name__)


class PostCreatedMessage(CamelModel):
    type: Literal["postCreated"] = "postCreated"
    post: PostResponse
    actor_id: UUID | None = None

    def to_domain(self) -> PostCreated:
        return PostCreated(post=self.post.to_view(), actor_id=self.actor_id)


class PostUpdatedMessage(CamelModel):
    type: Literal["postUpdated"] = "postUpdated"
    post: PostResponse
    actor_id: UUID | None = None

    def to_domain(self) -> PostUpdated:
        return PostUpdated(post=self.post.to_view(), actor_id=self.actor_id)


class PostDeletedMessage(CamelModel):
    type: Literal["postDeleted"] = "postDeleted"
    id: UUID
    actor_id: UUID | None = None

    def to_domain(self) -> PostDeleted:
        return PostDeleted(post_id=self.id, actor_id=self.actor_id)


class PostLikedMessage(CamelModel):
    type: Literal["postLiked"] = "postLiked"
    post_id: UUID
    like_count: int = Field(ge=0)
    is_liked: bool
    actor_id: UUID | None = None
    occurred_at: datetime | None = None

    def to_domain(self) -> PostLiked:
        return PostLiked(
            post_id=self.post_id, like_count=self.like_count,
            is_liked=self.is_liked, actor_id=self.actor_id,
            occurred_at=self.occurred_at,
        )


class CommentAddedMessage(CamelModel):
    type: Literal["commentAdded"] = "commentAdded"
    post_id: UUID
    comment: CommentResponse
    actor_id: UUID

    def to_domain(self) -> CommentAdded:
        return CommentAdded(
            post_id=self.post_id, comment=self.comment.to_view(),
            actor_id=self.actor_id,
        )


class CommentDeletedMessage(CamelModel):
    type: Literal["commentDeleted"] = "commentDeleted"
    post_id: UUID
    comment_id: UUID
    actor_id: UUID

    def to_domain(self) -> CommentDeleted:
        return CommentDeleted(
            post_id=self.post_id, comment_id=self.comment_id,
            actor_id=self.actor_id,
        )


EventMessage = Annotated[
    Union[
        PostCreatedMessage, PostUpdatedMessage, PostDeletedMessage,
        PostLikedMessage, CommentAddedMessage, CommentDeletedMessage,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[EventMessage] = TypeAdapter(EventMessage)


def to_wire(message: CamelModel) -> dict:
    """Serialize a message into the {"type", "data"} envelope."""
    data = message.model_dump(mode="json", by_alias=True, exclude={"type"})
    return {"type": message.type, "data": data}


def parse_event_message(raw: object) -> DomainEvent | None:
    """Validate one envelope and convert it to a domain event. None if unusable."""
    if not isinstance(raw, dict):
        logger.debug("Dropped non-object event frame: %r", raw)
        return None
    data = raw.get("data")
    if not isinstance(data, dict):
        logger.debug("Dropped event without data object (type=%s)", raw.get("type"))
        return None
    try:
        message = _event_adapter.validate_python({**data, "type": raw.get("type")})
    except ValidationError as exc:
        logger.debug(
            "Dropped malformed event (type=%s): %s", raw.get("type"), exc.error_count(),
        )
        return None
    return message.to_domain()
