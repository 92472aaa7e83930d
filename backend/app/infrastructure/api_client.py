"""Blog API Client - httpx implementation of the PostsApi protocol.

Invariants:
    - Every non-2xx response is rebuilt into the matching BlogError subclass (from_response)
    - Connection failures and timeouts surface as ApiUnavailableError, never raw httpx errors
    - Responses are validated by the wire schemas before becoming core views

Design Decisions:
    - One shared httpx.AsyncClient per instance; the token is a default header so the
      caller switches identity with set_token() instead of rebuilding the client
"""

import logging
from typing import TypeVar
from uuid import UUID

import httpx
from pydantic import ValidationError

from app.core.errors import ApiUnavailableError, from_response
from app.core.post_views import CommentView, PostView
from app.core.repository_protocols import LikeState, PostDraft, PostPage
from app.schemas.post import (
    CommentResponse, LikeToggleResponse, PostListResponse, PostResponse,
)

logger = logging.getLogger(__name__)

_POSTS = "/api/v1/posts"

T = TypeVar("T")


class BlogApiClient:
    """REST client for the posts API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport,
        )
        self.set_token(token)

    def set_token(self, token: str | None) -> None:
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BlogApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Reads -----------------------------------------------------------------

    async def list_posts(
        self, *, page: int = 1, limit: int = 10,
        search: str | None = None, tag: str | None = None, published: bool = True,
    ) -> PostPage:
        params: dict = {"page": page, "limit": limit, "published": str(published).lower()}
        if search:
            params["search"] = search
        if tag:
            params["tag"] = tag
        body = await self._request("GET", _POSTS, params=params)
        return _to_page(_parse(PostListResponse, body))

    async def list_my_posts(self, *, page: int = 1, limit: int = 10) -> PostPage:
        body = await self._request(
            "GET", f"{_POSTS}/my-posts", params={"page": page, "limit": limit},
        )
        return _to_page(_parse(PostListResponse, body))

    async def get_post(self, post_id: UUID) -> PostView:
        body = await self._request("GET", f"{_POSTS}/{post_id}")
        return _parse(PostResponse, body).to_view()

    # --- Mutations -------------------------------------------------------------

    async def create_post(self, draft: PostDraft) -> PostView:
        body = await self._request("POST", _POSTS, json=_draft_payload(draft))
        return _parse(PostResponse, body).to_view()

    async def update_post(self, post_id: UUID, draft: PostDraft) -> PostView:
        body = await self._request(
            "PUT", f"{_POSTS}/{post_id}", json=_draft_payload(draft),
        )
        return _parse(PostResponse, body).to_view()

    async def delete_post(self, post_id: UUID) -> None:
        await self._request("DELETE", f"{_POSTS}/{post_id}")

    async def toggle_like(self, post_id: UUID) -> LikeState:
        body = await self._request("POST", f"{_POSTS}/{post_id}/like")
        result = _parse(LikeToggleResponse, body)
        return LikeState(like_count=result.like_count, is_liked=result.is_liked)

    async def add_comment(self, post_id: UUID, content: str) -> CommentView:
        body = await self._request(
            "POST", f"{_POSTS}/{post_id}/comments", json={"content": content},
        )
        return _parse(CommentResponse, body).to_view()

    async def delete_comment(self, post_id: UUID, comment_id: UUID) -> None:
        await self._request("DELETE", f"{_POSTS}/{post_id}/comments/{comment_id}")

    # --- Transport -------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs) -> dict | None:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"API timeout on {method} {url}: {e}")
            raise ApiUnavailableError(f"Request timed out: {method} {url}", 504)
        except httpx.TransportError as e:
            logger.warning(f"API unreachable on {method} {url}: {e}")
            raise ApiUnavailableError(f"API unreachable: {e}")

        body = _json_or_none(response)
        if response.is_error:
            error = from_response(response.status_code, body)
            logger.info(
                f"API error {response.status_code} on {method} {url}",
                extra={"error_code": error.code, "path": url},
            )
            raise error
        return body


def _json_or_none(response: httpx.Response) -> dict | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _draft_payload(draft: PostDraft) -> dict:
    payload: dict = {"title": draft.title, "content": draft.content}
    if draft.excerpt is not None:
        payload["excerpt"] = draft.excerpt
    if draft.image_url is not None:
        payload["imageUrl"] = draft.image_url
    if draft.tags is not None:
        payload["tags"] = list(draft.tags)
    if draft.published is not None:
        payload["published"] = draft.published
    return payload


def _parse(model: type[T], body: dict | None) -> T:
    """Validate a response body; a malformed body is treated as a bad gateway."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Malformed API response for {model.__name__}: {e.error_count()} errors")
        raise ApiUnavailableError("Malformed API response", 502)


def _to_page(result: PostListResponse) -> PostPage:
    return PostPage(
        posts=tuple(p.to_view() for p in result.data),
        page=result.pagination.page,
        limit=result.pagination.limit,
        total=result.pagination.total,
        pages=result.pagination.pages,
    )
