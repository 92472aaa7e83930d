"""SyncClient tests - connection lifecycle, retry budget, and event intake.

Invariants:
    - max_attempts refused handshakes end in FAILED with exactly one error notification
    - connect() while connecting/connected never opens a second connection
    - Signing out disconnects without a warning; an unexpected drop warns and reconnects
    - Joined rooms follow the connection across reconnects

Design Decisions:
    - Scripted FakeTransport, base_delay_ms=0 so retries do not sleep
"""

from uuid import uuid4

from app.core.domain_types import ConnectionStatus, NotificationLevel
from app.core.posts_actions import PostsFetched
from app.core.repository_protocols import AuthSession
from app.services.notifications import NotificationCenter
from app.services.posts_store import PostsStore
from app.services.sync_client import SyncClient

from tests.factories import comment_payload, make_author, make_comment, make_post, post_payload
from tests.services.fake_transport import FakeTransport, wait_until


def _session(name: str = "Alice", token: str = "token-alice") -> AuthSession:
    return AuthSession(user_id=uuid4(), name=name, token=token)


def _build(failures: int = 0, max_attempts: int = 5):
    transport = FakeTransport(failures=failures)
    store = PostsStore()
    notifier = NotificationCenter()
    client = SyncClient(
        transport, store, notifier, max_attempts=max_attempts, base_delay_ms=0,
    )
    return client, transport, store, notifier


async def _connected(client, session=None):
    await client.on_authentication_changed(session or _session())
    await wait_until(lambda: client.is_connected)


def _levels(notifier) -> list[NotificationLevel]:
    return [n.level for n in notifier.notifications]


# --- Connect / retry budget ------------------------------------------------------

async def test_connect_requires_session():
    client, transport, _, _ = _build()
    await client.connect()
    assert client.status is ConnectionStatus.DISCONNECTED
    assert transport.attempts == 0


async def test_successful_connect_notifies_once_and_sets_viewer():
    client, transport, store, notifier = _build()
    session = _session()
    await _connected(client, session)

    assert transport.tokens == ["token-alice"]
    assert client.connection_id == "conn-1"
    assert store.get_state().viewer_id == session.user_id
    assert _levels(notifier) == [NotificationLevel.SUCCESS]
    await client.close()


async def test_refused_handshakes_end_in_failed_with_one_error():
    client, transport, _, notifier = _build(failures=100)
    await client.on_authentication_changed(_session())
    await client.wait_closed()

    assert client.status is ConnectionStatus.FAILED
    assert transport.attempts == 5
    assert _levels(notifier) == [NotificationLevel.ERROR]
    assert notifier.notifications[0].message == "Failed to connect to real-time updates"


async def test_recovers_before_budget_runs_out():
    client, transport, _, notifier = _build(failures=3)
    await _connected(client)

    assert transport.attempts == 4
    assert _levels(notifier) == [NotificationLevel.SUCCESS]
    await client.close()


async def test_explicit_connect_after_failed_starts_fresh_budget():
    client, transport, _, _ = _build(failures=7, max_attempts=5)
    await client.on_authentication_changed(_session())
    await client.wait_closed()
    assert client.status is ConnectionStatus.FAILED

    await client.connect()
    await wait_until(lambda: client.is_connected)
    assert transport.attempts == 8
    await client.close()


async def test_connect_while_connected_is_noop():
    client, transport, _, _ = _build()
    await _connected(client)

    await client.connect()
    await client.connect()

    assert transport.attempts == 1
    await client.close()


# --- Authentication gating ------------------------------------------------------

async def test_sign_out_disconnects_without_warning():
    client, transport, store, notifier = _build()
    await _connected(client)
    subscription = transport.current

    await client.on_authentication_changed(None)

    assert client.status is ConnectionStatus.DISCONNECTED
    assert subscription.closed
    assert store.get_state().viewer_id is None
    assert _levels(notifier) == [NotificationLevel.SUCCESS]


async def test_token_change_reconnects_with_new_credential():
    client, transport, _, _ = _build()
    await _connected(client, _session(token="first"))
    first = transport.current

    await client.on_authentication_changed(_session(token="second"))
    await wait_until(lambda: client.is_connected and len(transport.opened) == 2)

    assert first.closed
    assert transport.tokens == ["first", "second"]
    await client.close()


# --- Drops and rooms -------------------------------------------------------------

async def test_unexpected_drop_warns_and_reconnects():
    client, transport, _, notifier = _build()
    await _connected(client)

    transport.current.fail()
    await wait_until(lambda: len(transport.opened) == 2 and client.is_connected)

    assert transport.opened[0].closed
    assert _levels(notifier) == [
        NotificationLevel.SUCCESS, NotificationLevel.WARNING, NotificationLevel.SUCCESS,
    ]
    await client.close()


async def test_clean_server_close_also_reconnects():
    client, transport, _, _ = _build()
    await _connected(client)

    transport.current.end()
    await wait_until(lambda: len(transport.opened) == 2 and client.is_connected)
    await client.close()


async def test_rooms_forwarded_and_rejoined_after_reconnect():
    client, transport, _, _ = _build()
    post_id = uuid4()
    await client.join_post(post_id)
    await _connected(client)
    assert transport.current.joined == [post_id]

    other = uuid4()
    await client.join_post(other)
    await client.leave_post(post_id)
    assert transport.current.joined == [post_id, other]
    assert transport.current.left == [post_id]

    transport.current.fail()
    await wait_until(lambda: len(transport.opened) == 2 and client.is_connected)
    assert transport.current.joined == [other]

    await client.close()
    assert client.rooms == frozenset()


# --- Event intake ----------------------------------------------------------------

async def test_post_created_event_reaches_store_and_notifies():
    client, transport, store, notifier = _build()
    await _connected(client)
    post = make_post(author=make_author("Jane Smith"), title="Fresh from the server")

    transport.current.push({
        "type": "postCreated", "data": {"post": post_payload(post), "actorId": None},
    })
    await wait_until(lambda: store.get_state().posts)

    assert [p.id for p in store.get_state().posts] == [post.id]
    assert notifier.notifications[-1].level is NotificationLevel.INFO
    assert notifier.notifications[-1].message == 'New post: "Fresh from the server" by Jane Smith'
    await client.close()


async def test_malformed_messages_are_dropped_and_stream_continues():
    client, transport, store, notifier = _build()
    await _connected(client)
    post = make_post()

    transport.current.push("not an object")
    transport.current.push({"type": "postLiked", "data": {"postId": "nope"}})
    transport.current.push({"type": "mystery", "data": {}})
    transport.current.push({
        "type": "postCreated", "data": {"post": post_payload(post)},
    })
    await wait_until(lambda: store.get_state().posts)

    assert [p.id for p in store.get_state().posts] == [post.id]
    assert client.is_connected
    await client.close()


async def test_comment_notification_only_for_other_users():
    client, transport, store, notifier = _build()
    session = _session()
    await _connected(client, session)
    post = make_post()
    store.dispatch(PostsFetched(posts=(post,), total=1, pages=1))

    own = make_comment(author=make_author("Alice", session.user_id))
    transport.current.push({
        "type": "commentAdded",
        "data": {
            "postId": str(post.id), "comment": comment_payload(own),
            "actorId": str(session.user_id),
        },
    })
    foreign_author = make_author("Mike Johnson")
    foreign = make_comment(author=foreign_author)
    transport.current.push({
        "type": "commentAdded",
        "data": {
            "postId": str(post.id), "comment": comment_payload(foreign),
            "actorId": str(foreign_author.id),
        },
    })
    await wait_until(lambda: store.get_state().posts[0].comments)

    comments = store.get_state().posts[0].comments
    assert [c.id for c in comments] == [foreign.id]
    infos = notifier.of_level(NotificationLevel.INFO)
    assert [n.message for n in infos] == ["New comment by Mike Johnson"]
    await client.close()
