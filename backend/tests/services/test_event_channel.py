"""EventChannel tests - fan-out, ordering, backpressure, and heartbeats."""

import asyncio
from uuid import uuid4

import pytest

from app.core.errors import ResourceNotFoundError
from app.infrastructure.event_channel import HEARTBEAT, EventChannel
from app.schemas.events import PostDeletedMessage


def _deleted(post_id=None):
    return PostDeletedMessage(id=post_id or uuid4(), actor_id=uuid4())


async def _collect(channel, connection, heartbeat=None, limit=10):
    items = []
    async for item in channel.stream(connection, heartbeat):
        items.append(item)
        if len(items) >= limit:
            break
    return items


async def test_publish_reaches_every_connection_in_order():
    channel = EventChannel()
    first, second = channel.connect(), channel.connect()
    ids = [uuid4(), uuid4(), uuid4()]

    for post_id in ids:
        assert channel.publish(_deleted(post_id)) == 2
    channel.close_all()

    for connection in (first, second):
        items = await _collect(channel, connection)
        assert [item["data"]["id"] for item in items] == [str(i) for i in ids]


async def test_publish_without_connections_delivers_to_nobody():
    assert EventChannel().publish(_deleted()) == 0


async def test_delivery_is_not_scoped_by_rooms():
    channel = EventChannel()
    in_room, elsewhere = channel.connect(), channel.connect()
    post_id = uuid4()
    channel.join(in_room.connection_id, post_id)

    assert channel.publish(_deleted(post_id)) == 2
    assert elsewhere.queue.qsize() == 1


async def test_full_queue_drops_event_for_that_connection_only():
    channel = EventChannel(queue_size=1)
    slow, fast = channel.connect(), channel.connect()
    channel.publish(_deleted())
    fast.queue.get_nowait()

    assert channel.publish(_deleted()) == 1
    assert slow.dropped == 1
    assert fast.queue.qsize() == 1


async def test_disconnect_ends_stream_even_when_queue_is_full():
    channel = EventChannel(queue_size=1)
    connection = channel.connect()
    channel.publish(_deleted())
    channel.disconnect(connection.connection_id)

    items = await asyncio.wait_for(_collect(channel, connection), timeout=1)
    assert items == []
    assert channel.connection_count == 0


async def test_stream_yields_heartbeat_when_idle():
    channel = EventChannel()
    connection = channel.connect()
    items = await asyncio.wait_for(
        _collect(channel, connection, heartbeat=0.01, limit=2), timeout=1,
    )
    assert items == [HEARTBEAT, HEARTBEAT]


async def test_join_unknown_connection_raises():
    channel = EventChannel()
    with pytest.raises(ResourceNotFoundError):
        channel.join("missing", uuid4())


async def test_disconnect_drops_room_memberships():
    channel = EventChannel()
    connection = channel.connect()
    post_id = uuid4()
    assert channel.join(connection.connection_id, post_id) is True
    assert channel.join(connection.connection_id, post_id) is False

    channel.disconnect(connection.connection_id)

    assert channel.stats() == {"connections": 0, "rooms": {}}
