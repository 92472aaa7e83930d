"""Realtime API - SSE event stream and post-room control for the event channel.

Invariants:
    - First frame of every stream is {"type": "connected", "data": {"connectionId": ...}}
    - Idle streams emit ": keepalive" comment frames every realtime_heartbeat_seconds
    - The connection is always removed from the channel (and its rooms) when the stream ends
    - The caller is resolved in a session that is closed before the first frame is sent
    - Room endpoints answer 204 on success, 404 for an unknown connection id

Design Decisions:
    - Anonymous streams are allowed: the synchronization client only opens one when
      authenticated, but published events are not secret
"""

import asyncio
import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_stream_user
from app.config import get_settings
from app.core.domain_types import ControlMessage
from app.infrastructure.event_channel import EventChannel, HEARTBEAT, get_event_channel
from app.models.user import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/realtime", tags=["realtime"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

_KEEPALIVE_FRAME = ": keepalive\n\n"


@router.get("/stream")
async def stream_events(
    user: User | None = Depends(get_stream_user),
    channel: EventChannel = Depends(get_event_channel),
):
    """Open an event stream. Every committed mutation is pushed as one data frame."""
    connection = channel.connect(user.id if user else None)
    heartbeat = get_settings().realtime_heartbeat_seconds

    async def event_generator():
        try:
            yield _sse_line({
                "type": ControlMessage.CONNECTED.value,
                "data": {"connectionId": connection.connection_id},
            })
            async for envelope in channel.stream(connection, heartbeat):
                if envelope is HEARTBEAT:
                    yield _KEEPALIVE_FRAME
                else:
                    yield _sse_line(envelope)
        except asyncio.CancelledError:
            logger.info(
                "Client disconnected from event stream",
                extra={"connection_id": connection.connection_id},
            )
            raise
        finally:
            channel.disconnect(connection.connection_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.post(
    "/connections/{connection_id}/rooms/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def join_room(
    connection_id: str,
    post_id: UUID,
    channel: EventChannel = Depends(get_event_channel),
):
    """Record that a connection is viewing a post."""
    channel.join(connection_id, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/connections/{connection_id}/rooms/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def leave_room(
    connection_id: str,
    post_id: UUID,
    channel: EventChannel = Depends(get_event_channel),
):
    channel.leave(connection_id, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
