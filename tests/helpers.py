"""Shared test helpers (constants, frame readers, in-process SSE relay)."""
import asyncio
import json

import httpx
from fastapi import Request

from toolrelay.core.push_channel import PushChannel
from toolrelay.routers.sse import open_push_channel

BASE_URL = "http://relay.test"
CATALOG_URL = "https://catalog.test"
JIRA_URL = "https://jira.test/rest/api/2"
FRAME_TIMEOUT = 2.0


async def next_frame(channel: PushChannel, timeout: float = FRAME_TIMEOUT):
    """Next queued payload on a channel, skipping keep-alives."""
    frames = channel.frames()

    async def _next():
        async for payload in frames:
            if payload is not None:
                return payload
        return None

    try:
        return await asyncio.wait_for(_next(), timeout=timeout)
    finally:
        await frames.aclose()


async def read_event(lines, timeout: float = FRAME_TIMEOUT):
    """Decode the next ``data:`` event from an SSE line iterator (None at end of stream)."""

    async def _read():
        data = []
        async for line in lines:
            if not line:
                if data:
                    return json.loads("\n".join(data))
                continue
            if line.startswith("data:"):
                data.append(line[5:].lstrip())
        return None

    return await asyncio.wait_for(_read(), timeout=timeout)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run a few event-loop turns."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class _EventStreamBody(httpx.AsyncByteStream):
    """Response body over a StreamingResponse iterator; closing it ends the server stream."""

    def __init__(self, iterator):
        self._iterator = iterator

    async def __aiter__(self):
        async for chunk in self._iterator:
            yield chunk.encode() if isinstance(chunk, str) else chunk

    async def aclose(self) -> None:
        await self._iterator.aclose()


def make_relay_handler(app):
    """httpx handler serving an app's endpoints with a live SSE body.

    ``httpx.ASGITransport`` buffers whole responses, which never finishes for
    an event stream. GET /sse is therefore served by calling the endpoint
    directly and streaming its body iterator; every other request goes
    through the ASGI transport.
    """
    asgi = httpx.ASGITransport(app=app)

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/sse":
            scope = {
                "type": "http",
                "app": app,
                "method": "GET",
                "path": "/sse",
                "headers": [],
                "query_string": b"",
            }
            response = await open_push_channel(Request(scope))
            return httpx.Response(
                response.status_code,
                headers={"content-type": response.media_type},
                stream=_EventStreamBody(response.body_iterator),
            )
        return await asgi.handle_async_request(request)

    return handler
