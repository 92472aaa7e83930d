"""ORM Models - SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Post is the aggregate root; likes and comments are scoped by post_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.user import User  # noqa: F401
from app.models.post import Post  # noqa: F401
from app.models.like import PostLike  # noqa: F401
from app.models.comment import Comment  # noqa: F401
