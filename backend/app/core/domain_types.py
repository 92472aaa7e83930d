"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - PostId, UserId, CommentId wrap UUIDs; ConnectionId wraps the channel's opaque string id
    - Event names are the wire names (camelCase) broadcast on the event channel
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# --- Identity Types ----------------------------------------------------------

PostId = NewType("PostId", UUID)
UserId = NewType("UserId", UUID)
CommentId = NewType("CommentId", UUID)
ConnectionId = NewType("ConnectionId", str)


# --- Enums -------------------------------------------------------------------

class UserRole(str, Enum):
    """Account roles. Admins may edit and delete anything."""
    USER = "user"
    ADMIN = "admin"


class EventType(str, Enum):
    """Domain event names as broadcast on the event channel."""
    POST_CREATED = "postCreated"
    POST_UPDATED = "postUpdated"
    POST_DELETED = "postDeleted"
    POST_LIKED = "postLiked"
    COMMENT_ADDED = "commentAdded"
    COMMENT_DELETED = "commentDeleted"


class ControlMessage(str, Enum):
    """Non-domain frames on the event stream."""
    CONNECTED = "connected"


class ConnectionStatus(str, Enum):
    """Synchronization client connection lifecycle."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class NotificationLevel(str, Enum):
    """User-visible notification severity."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# --- Constants ---------------------------------------------------------------

MAX_RECONNECT_ATTEMPTS = 5
EXCERPT_LENGTH = 200
TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
CONTENT_MIN_LENGTH = 10
COMMENT_MAX_LENGTH = 2000
