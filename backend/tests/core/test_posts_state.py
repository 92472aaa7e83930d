"""posts_state selector tests."""

from uuid import uuid4

from app.core.posts_state import (
    ClientPostsState, copies_of, find_post, is_liked_by_viewer, visible_comments,
)

from tests.factories import make_comment, make_post


def test_visible_comments_dedupes_first_position_last_value():
    first = make_comment(content="first")
    second = make_comment(content="second")
    edited = make_comment(content="edited", comment_id=first.id)
    post = make_post(comments=(first, second, edited))

    result = visible_comments(post)

    assert [c.id for c in result] == [first.id, second.id]
    assert result[0].content == "edited"


def test_copies_of_lists_shared_object_once():
    post = make_post()
    state = ClientPostsState(posts=[post], my_posts=[post], current_post=post)
    assert copies_of(state, post.id) == [post]


def test_find_post_missing_returns_none():
    assert find_post(ClientPostsState(), uuid4()) is None


def test_is_liked_by_viewer():
    viewer = uuid4()
    post = make_post(likers=(viewer,))
    state = ClientPostsState(posts=[post], viewer_id=viewer)
    assert is_liked_by_viewer(state, post.id)
    state.viewer_id = None
    assert not is_liked_by_viewer(state, post.id)
