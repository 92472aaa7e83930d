"""Integration Tests: Realtime API - SSE stream, room control, readiness stats."""

import asyncio
import json
from uuid import uuid4

import app.infrastructure.database as db_module
from app.schemas.events import PostDeletedMessage

from tests.factories import auth_headers


async def _wait_for_connections(channel, count: int) -> None:
    for _ in range(200):
        if channel.connection_count >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} connections, have {channel.connection_count}")


class _CountingSessionFactory:
    """Wraps a session factory and tracks sessions that are still open."""

    def __init__(self, factory):
        self._factory = factory
        self.opened = 0
        self.open = 0

    def __call__(self):
        session = self._factory()
        self.opened += 1
        self.open += 1
        close = session.close

        async def counted_close():
            self.open -= 1
            await close()

        session.close = counted_close
        return session


def _data_frames(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


async def test_stream_sends_handshake_then_events(client, channel, alice):
    request = asyncio.create_task(
        client.get("/api/v1/realtime/stream", headers=auth_headers(alice)),
    )
    await _wait_for_connections(channel, 1)

    post_id = uuid4()
    assert channel.publish(PostDeletedMessage(id=post_id, actor_id=alice.id)) == 1
    channel.close_all()
    response = await asyncio.wait_for(request, timeout=5)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    frames = _data_frames(response.text)
    assert frames[0]["type"] == "connected"
    assert frames[0]["data"]["connectionId"]
    assert frames[1] == {
        "type": "postDeleted",
        "data": {"id": str(post_id), "actorId": str(alice.id)},
    }
    assert channel.connection_count == 0


async def test_stream_end_removes_connection_from_rooms(client, channel):
    request = asyncio.create_task(client.get("/api/v1/realtime/stream"))
    await _wait_for_connections(channel, 1)
    (connection_id,) = list(channel._connections)
    post_id = uuid4()
    channel.join(connection_id, post_id)

    channel.close_all()
    await asyncio.wait_for(request, timeout=5)

    assert channel.registry.members(post_id) == frozenset()


async def test_join_and_leave_room(client, channel):
    connection = channel.connect()
    post_id = uuid4()
    url = f"/api/v1/realtime/connections/{connection.connection_id}/rooms/{post_id}"

    joined = await client.post(url)
    assert joined.status_code == 204
    assert channel.registry.members(post_id) == frozenset({connection.connection_id})

    again = await client.post(url)
    assert again.status_code == 204

    left = await client.delete(url)
    assert left.status_code == 204
    assert channel.registry.room_sizes() == {}


async def test_room_control_for_unknown_connection_is_404(client):
    response = await client.post(
        f"/api/v1/realtime/connections/missing/rooms/{uuid4()}",
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_readiness_reports_realtime_stats(client, channel):
    connection = channel.connect()
    post_id = uuid4()
    channel.join(connection.connection_id, post_id)

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["realtime"] == {"connections": 1, "rooms": {str(post_id): 1}}


async def test_liveness(client):
    response = await client.get("/api/v1/health/")
    assert response.json()["status"] == "healthy"


async def test_live_stream_holds_no_database_session(client, channel, alice, monkeypatch):
    sessions = _CountingSessionFactory(db_module.db_manager._session_factory)
    monkeypatch.setattr(db_module.db_manager, "_session_factory", sessions)

    request = asyncio.create_task(
        client.get("/api/v1/realtime/stream", headers=auth_headers(alice)),
    )
    await _wait_for_connections(channel, 1)

    (connection,) = channel._connections.values()
    assert connection.user_id == alice.id
    assert sessions.opened == 1
    assert sessions.open == 0

    channel.close_all()
    await asyncio.wait_for(request, timeout=5)


async def test_anonymous_stream_skips_user_lookup(client, channel, monkeypatch):
    sessions = _CountingSessionFactory(db_module.db_manager._session_factory)
    monkeypatch.setattr(db_module.db_manager, "_session_factory", sessions)

    request = asyncio.create_task(client.get("/api/v1/realtime/stream"))
    await _wait_for_connections(channel, 1)

    assert sessions.opened == 0
    channel.close_all()
    await asyncio.wait_for(request, timeout=5)
