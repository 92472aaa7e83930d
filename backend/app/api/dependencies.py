"""Request Dependencies - bearer-token resolution for protected routes.

Invariants:
    - "Authorization: Bearer <token>" is matched against User.api_token, nothing else
    - get_current_user raises AuthenticationRequiredError (401) on a missing or unknown token
    - get_stream_user never raises for credentials: anonymous callers get None
    - get_stream_user closes its session before returning: long-lived streams hold no
      pooled database connection
"""

import logging

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AuthenticationRequiredError
import app.infrastructure.database as database
from app.infrastructure.database import get_db
from app.models.user import User

logger = logging.getLogger(__name__)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def _user_for_token(db: AsyncSession, token: str | None) -> User | None:
    if not token:
        return None
    result = await db.execute(select(User).where(User.api_token == token))
    return result.scalar_one_or_none()


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller or fail with 401."""
    user = await _user_for_token(db, _bearer_token(authorization))
    if user is None:
        logger.info("Rejected request without valid credentials")
        raise AuthenticationRequiredError()
    return user


async def get_stream_user(
    authorization: str | None = Header(None),
) -> User | None:
    """Optional caller for endpoints whose response outlives the request scope."""
    token = _bearer_token(authorization)
    if not token:
        return None
    manager = database.db_manager
    if manager is None:
        raise RuntimeError("Database not initialized")
    async with manager.session() as db:
        return await _user_for_token(db, token)
