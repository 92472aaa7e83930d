"""Integration Tests: Posts API - REST mutations and the events they publish.

Invariants:
    - Each successful mutation publishes exactly one event, after commit
    - Rejected mutations (400/401/403/404) publish nothing
    - Wire format is camelCase

Design Decisions:
    - Real FastAPI app over ASGITransport, in-memory SQLite, a drained channel listener
"""

from uuid import uuid4

import app.api.routes.posts as posts_routes

from tests.factories import auth_headers

_VALID = {
    "title": "Realtime blogging",
    "content": "Server-sent events keep every tab in sync.",
    "tags": "python, realtime",
    "published": True,
}


async def _create(client, user, **overrides) -> dict:
    response = await client.post(
        "/api/v1/posts", json={**_VALID, **overrides}, headers=auth_headers(user),
    )
    assert response.status_code == 201, response.text
    return response.json()


# --- Create --------------------------------------------------------------------

async def test_create_post_returns_camel_case_and_publishes_event(client, alice, drain):
    post = await _create(client, alice)

    assert post["title"] == "Realtime blogging"
    assert post["tags"] == ["python", "realtime"]
    assert post["author"]["name"] == "Alice Author"
    assert post["likeCount"] == 0
    assert post["commentCount"] == 0
    assert post["excerpt"] == _VALID["content"]

    events = drain()
    assert [e["type"] for e in events] == ["postCreated"]
    assert events[0]["data"]["post"]["id"] == post["id"]
    assert events[0]["data"]["actorId"] == str(alice.id)


async def test_create_post_defaults_long_excerpt(client, alice):
    content = "x" * 250
    post = await _create(client, alice, content=content)
    assert post["excerpt"] == "x" * 200 + "..."


async def test_create_post_requires_auth(client, drain):
    response = await client.post("/api/v1/posts", json=_VALID)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"
    assert drain() == []


async def test_create_post_unknown_token_is_401(client, drain):
    response = await client.post(
        "/api/v1/posts", json=_VALID, headers={"Authorization": "Bearer nope"},
    )
    assert response.status_code == 401
    assert drain() == []


async def test_create_post_validation_error_is_itemized(client, alice, drain):
    response = await client.post(
        "/api/v1/posts",
        json={"title": "abc", "content": "short"},
        headers=auth_headers(alice),
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {d["field"] for d in error["details"]}
    assert fields == {"body.title", "body.content"}
    assert drain() == []


# --- Read ----------------------------------------------------------------------

async def test_list_posts_filters_and_paginates(client, alice):
    await _create(client, alice, title="First python post", tags=["python"])
    await _create(client, alice, title="Second rust post", tags=["rust"])
    await _create(client, alice, title="A hidden draft", published=False)

    response = await client.get("/api/v1/posts")
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}
    assert [p["title"] for p in body["data"]] == ["Second rust post", "First python post"]

    with_drafts = await client.get("/api/v1/posts", params={"published": "false"})
    assert with_drafts.json()["pagination"]["total"] == 3

    by_tag = await client.get("/api/v1/posts", params={"tag": "python"})
    assert [p["title"] for p in by_tag.json()["data"]] == ["First python post"]

    by_search = await client.get("/api/v1/posts", params={"search": "RUST"})
    assert [p["title"] for p in by_search.json()["data"]] == ["Second rust post"]

    paged = await client.get("/api/v1/posts", params={"limit": 1, "page": 2})
    assert paged.json()["pagination"]["pages"] == 2
    assert [p["title"] for p in paged.json()["data"]] == ["First python post"]


async def test_my_posts_includes_drafts_and_requires_auth(client, alice, bob):
    await _create(client, alice, title="Alice draft post", published=False)
    await _create(client, bob, title="Bob public post")

    response = await client.get("/api/v1/posts/my-posts", headers=auth_headers(alice))
    assert [p["title"] for p in response.json()["data"]] == ["Alice draft post"]

    anonymous = await client.get("/api/v1/posts/my-posts")
    assert anonymous.status_code == 401


async def test_get_post_counts_views(client, alice):
    post = await _create(client, alice)
    first = await client.get(f"/api/v1/posts/{post['id']}")
    second = await client.get(f"/api/v1/posts/{post['id']}")
    assert first.json()["views"] == 1
    assert second.json()["views"] == 2


async def test_get_missing_post_is_404(client):
    response = await client.get(f"/api/v1/posts/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# --- Update / delete -----------------------------------------------------------

async def test_update_by_other_user_is_forbidden(client, alice, bob, drain):
    post = await _create(client, alice)
    drain()

    response = await client.put(
        f"/api/v1/posts/{post['id']}",
        json={"title": "Hijacked title", "content": "Hijacked content here"},
        headers=auth_headers(bob),
    )
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Not authorized to update this post"
    assert drain() == []


async def test_update_keeps_unspecified_fields_and_publishes(client, alice, drain):
    post = await _create(client, alice)
    drain()

    response = await client.put(
        f"/api/v1/posts/{post['id']}",
        json={"title": "Edited title", "content": "Edited content is long"},
        headers=auth_headers(alice),
    )
    updated = response.json()
    assert updated["title"] == "Edited title"
    assert updated["tags"] == ["python", "realtime"]
    assert updated["published"] is True

    events = drain()
    assert [e["type"] for e in events] == ["postUpdated"]
    assert events[0]["data"]["post"]["title"] == "Edited title"


async def test_admin_may_delete_any_post(client, alice, admin, drain):
    post = await _create(client, alice)
    drain()

    response = await client.delete(
        f"/api/v1/posts/{post['id']}", headers=auth_headers(admin),
    )
    assert response.status_code == 200

    events = drain()
    assert events == [{
        "type": "postDeleted",
        "data": {"id": post["id"], "actorId": str(admin.id)},
    }]
    assert (await client.get(f"/api/v1/posts/{post['id']}")).status_code == 404


async def test_delete_missing_post_publishes_nothing(client, alice, drain):
    response = await client.delete(f"/api/v1/posts/{uuid4()}", headers=auth_headers(alice))
    assert response.status_code == 404
    assert drain() == []


# --- Likes ---------------------------------------------------------------------

async def test_toggle_like_twice_round_trips(client, alice, bob, drain):
    post = await _create(client, alice)
    drain()
    url = f"/api/v1/posts/{post['id']}/like"

    liked = await client.post(url, headers=auth_headers(bob))
    assert liked.json() == {"likeCount": 1, "isLiked": True}
    unliked = await client.post(url, headers=auth_headers(bob))
    assert unliked.json() == {"likeCount": 0, "isLiked": False}

    events = drain()
    assert [(e["data"]["likeCount"], e["data"]["isLiked"]) for e in events] == [
        (1, True), (0, False),
    ]
    assert all(e["data"]["actorId"] == str(bob.id) for e in events)


async def test_likes_from_two_users_are_counted_separately(client, alice, bob):
    post = await _create(client, alice)
    url = f"/api/v1/posts/{post['id']}/like"
    await client.post(url, headers=auth_headers(alice))
    result = await client.post(url, headers=auth_headers(bob))
    assert result.json() == {"likeCount": 2, "isLiked": True}

    fetched = (await client.get(f"/api/v1/posts/{post['id']}")).json()
    assert {like["user"] for like in fetched["likes"]} == {str(alice.id), str(bob.id)}


# --- Comments ------------------------------------------------------------------

async def test_add_comment_returns_201_and_publishes(client, alice, bob, drain):
    post = await _create(client, alice)
    drain()

    response = await client.post(
        f"/api/v1/posts/{post['id']}/comments",
        json={"content": "  Great read!  "},
        headers=auth_headers(bob),
    )
    assert response.status_code == 201
    comment = response.json()
    assert comment["content"] == "Great read!"
    assert comment["user"]["name"] == "Bob Reader"

    events = drain()
    assert [e["type"] for e in events] == ["commentAdded"]
    assert events[0]["data"]["comment"]["id"] == comment["id"]
    assert events[0]["data"]["actorId"] == str(bob.id)

    fetched = (await client.get(f"/api/v1/posts/{post['id']}")).json()
    assert fetched["commentCount"] == 1


async def test_empty_comment_is_rejected(client, alice, drain):
    post = await _create(client, alice)
    drain()
    response = await client.post(
        f"/api/v1/posts/{post['id']}/comments",
        json={"content": "   "},
        headers=auth_headers(alice),
    )
    assert response.status_code == 400
    assert drain() == []


async def test_delete_comment_ownership(client, alice, bob, drain):
    post = await _create(client, alice)
    comment = (await client.post(
        f"/api/v1/posts/{post['id']}/comments",
        json={"content": "Bob was here"},
        headers=auth_headers(bob),
    )).json()
    drain()
    url = f"/api/v1/posts/{post['id']}/comments/{comment['id']}"

    forbidden = await client.delete(url, headers=auth_headers(alice))
    assert forbidden.status_code == 403
    assert drain() == []

    allowed = await client.delete(url, headers=auth_headers(bob))
    assert allowed.status_code == 200
    assert drain() == [{
        "type": "commentDeleted",
        "data": {
            "postId": post["id"],
            "commentId": comment["id"],
            "actorId": str(bob.id),
        },
    }]

    missing = await client.delete(url, headers=auth_headers(bob))
    assert missing.status_code == 404
    fetched = (await client.get(f"/api/v1/posts/{post['id']}")).json()
    assert fetched["commentCount"] == 0


async def test_page_size_above_configured_max_is_rejected(client):
    response = await client.get("/api/v1/posts", params={"limit": 101})
    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "query.limit"


async def test_like_insert_race_keeps_committed_like(client, alice, bob, drain, monkeypatch):
    post = await _create(client, alice)
    url = f"/api/v1/posts/{post['id']}/like"
    await client.post(url, headers=auth_headers(bob))
    drain()

    async def stale_lookup(db, post_id, user_id):
        return None

    # the other tab's like is committed but this request read before it landed
    monkeypatch.setattr(posts_routes, "_find_like", stale_lookup)
    response = await client.post(url, headers=auth_headers(bob))

    assert response.status_code == 200
    assert response.json() == {"likeCount": 1, "isLiked": True}
    events = drain()
    assert [(e["data"]["likeCount"], e["data"]["isLiked"]) for e in events] == [(1, True)]
