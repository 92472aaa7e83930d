"""Event Stream Client - httpx implementation of the EventTransport protocol over SSE.

Invariants:
    - open() returns only after the server's "connected" handshake frame was read
    - Any refusal (connect error, non-2xx, missing handshake) raises ChannelTransportError
    - messages() yields decoded JSON objects; comment frames (keepalives) and frames
      that are not valid JSON objects are skipped
    - A dropped stream ends messages() with ChannelTransportError, a clean close ends it normally

Design Decisions:
    - One httpx.AsyncClient shared by all subscriptions of a transport; each subscription
      owns only its streaming response
    - No read timeout on the stream: the server's keepalive frames prove liveness
"""

import json
import logging
from typing import AsyncIterator
from uuid import UUID

import httpx

from app.core.domain_types import ControlMessage
from app.core.errors import ChannelTransportError, ErrorContext

logger = logging.getLogger(__name__)

_REALTIME = "/api/v1/realtime"


async def parse_sse_frames(lines: AsyncIterator[str]) -> AsyncIterator[dict]:
    """Group SSE lines into frames and decode each frame's data as JSON."""
    data_lines: list[str] = []
    async for line in lines:
        if line == "":
            if data_lines:
                frame = _decode_frame("\n".join(data_lines))
                data_lines = []
                if frame is not None:
                    yield frame
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)
    if data_lines:
        frame = _decode_frame("\n".join(data_lines))
        if frame is not None:
            yield frame


def _decode_frame(payload: str) -> dict | None:
    try:
        frame = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Dropped non-JSON event frame: %.200s", payload)
        return None
    if not isinstance(frame, dict):
        logger.debug("Dropped non-object event frame: %.200s", payload)
        return None
    return frame


class SSESubscription:
    """One open event stream plus room control for its connection id."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        frames: AsyncIterator[dict],
        connection_id: str,
        headers: dict,
    ):
        self.connection_id = connection_id
        self._client = client
        self._response = response
        self._frames = frames
        self._headers = headers
        self._closed = False

    async def messages(self) -> AsyncIterator[dict]:
        try:
            async for frame in self._frames:
                yield frame
        except httpx.HTTPError as e:
            if self._closed:
                return
            raise ChannelTransportError(
                f"Event stream dropped: {e}",
                context=ErrorContext(connection_id=self.connection_id),
            )

    async def join_room(self, post_id: UUID) -> None:
        await self._room_request("POST", post_id)

    async def leave_room(self, post_id: UUID) -> None:
        await self._room_request("DELETE", post_id)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()

    async def _room_request(self, method: str, post_id: UUID) -> None:
        url = f"{_REALTIME}/connections/{self.connection_id}/rooms/{post_id}"
        try:
            response = await self._client.request(method, url, headers=self._headers)
        except httpx.HTTPError as e:
            raise ChannelTransportError(f"Room request failed: {e}")
        if response.is_error:
            raise ChannelTransportError(
                f"Room request rejected with status {response.status_code}",
                context=ErrorContext(connection_id=self.connection_id),
            )


class SSEEventTransport:
    """Opens SSE subscriptions against the blog API."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, read=None),
            transport=transport,
        )

    async def open(self, token: str | None) -> SSESubscription:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        request = self._client.build_request(
            "GET", f"{_REALTIME}/stream",
            headers={**headers, "Accept": "text/event-stream"},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ChannelTransportError(f"Event stream unreachable: {e}")

        if response.is_error:
            await response.aclose()
            raise ChannelTransportError(
                f"Event stream refused with status {response.status_code}",
            )

        frames = parse_sse_frames(response.aiter_lines())
        try:
            handshake = await anext(frames, None)
        except httpx.HTTPError as e:
            await response.aclose()
            raise ChannelTransportError(f"Event stream dropped during handshake: {e}")

        connection_id = _handshake_connection_id(handshake)
        if connection_id is None:
            await response.aclose()
            raise ChannelTransportError("Event stream sent no handshake")
        return SSESubscription(self._client, response, frames, connection_id, headers)

    async def aclose(self) -> None:
        await self._client.aclose()


def _handshake_connection_id(frame: dict | None) -> str | None:
    if not frame or frame.get("type") != ControlMessage.CONNECTED.value:
        return None
    data = frame.get("data")
    if not isinstance(data, dict):
        return None
    connection_id = data.get("connectionId")
    return connection_id if isinstance(connection_id, str) and connection_id else None
