"""Service test fixtures - async DB, event channel, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so readiness probes see the test engine
    - Every test gets a fresh EventChannel installed as the process singleton

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features are not exercised here)
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.core.domain_types import UserRole
from app.db.base import Base
from app.infrastructure.database import get_db, DatabaseSessionManager
from app.infrastructure.event_channel import EventChannel
from app.models.user import User
import app.infrastructure.database as db_module
import app.infrastructure.event_channel as channel_module
import app.models  # noqa: F401
from app.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def channel():
    """Fresh event channel installed as the process-wide singleton."""
    original = channel_module.event_channel
    channel = EventChannel(queue_size=16)
    channel_module.event_channel = channel
    yield channel
    channel.close_all()
    channel_module.event_channel = original


@pytest.fixture
async def client(test_engine, test_session_factory, channel):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


async def _create_user(db: AsyncSession, name: str, token: str, role: UserRole) -> User:
    user = User(
        name=name,
        email=f"{token}@example.com",
        api_token=token,
        role=role.value,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def alice(test_db):
    return await _create_user(test_db, "Alice Author", "token-alice", UserRole.USER)


@pytest.fixture
async def bob(test_db):
    return await _create_user(test_db, "Bob Reader", "token-bob", UserRole.USER)


@pytest.fixture
async def admin(test_db):
    return await _create_user(test_db, "Ada Admin", "token-admin", UserRole.ADMIN)


@pytest.fixture
def drain(channel):
    """Connect a listener to the channel and return a function that drains its queue."""
    connection = channel.connect()

    def _drain() -> list[dict]:
        events = []
        while not connection.queue.empty():
            events.append(connection.queue.get_nowait())
        return events

    return _drain
