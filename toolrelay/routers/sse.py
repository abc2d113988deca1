"""Push subscription endpoint — GET /sse opens a session's event stream."""
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from toolrelay.core.push_channel import PushChannel

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def event_stream(channel: PushChannel, state) -> AsyncIterator[str]:
    """Register a channel, relay its frames, and tear the session down when the stream ends.

    Registration happens on the first iteration, so a response that is never
    streamed never leaves a session behind. Whatever ends the stream, the
    session is unregistered on the way out.
    """
    session_id = None
    try:
        session_id = state.transports.open(channel)
        async for frame in channel.stream():
            yield frame
    finally:
        if session_id is not None:
            state.transports.close(session_id)
            state.tasks.cancel_session(session_id)
            logger.info(f"SSE connection closed for sessionId: {session_id}")


class EventStreamResponse(StreamingResponse):
    """StreamingResponse that always closes its body iterator once the response is done."""

    media_type = "text/event-stream"

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()


@router.get("/sse")
async def open_push_channel(request: Request):
    """Open a push channel.

    Protocol:
      Server → Client:
        data: {"params": {"sessionId": "..."}}                    (always first)
        data: {"jsonrpc": "2.0", "id": "...", "result": {...}}
        data: {"jsonrpc": "2.0", "id": "...", "error": {...}}
        : keepalive
    """
    state = request.app.state
    channel = PushChannel(
        keepalive_seconds=state.settings.sse_keepalive_seconds,
        max_queued=state.settings.sse_max_queued_frames,
    )
    return EventStreamResponse(event_stream(channel, state), headers=SSE_HEADERS)
