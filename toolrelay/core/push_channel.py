"""Push channel — the long-lived server → client SSE stream of one session.

Lifecycle: OPENING → OPEN → CLOSED.

The session announcement is queued by ``open()`` before anything else can be,
so it is always the first frame a subscriber reads. Writes after ``close()``
are dropped, never raised.
"""
import asyncio
import enum
import json
import logging
from typing import Any, AsyncIterator, Optional, Union

from pydantic import BaseModel

from toolrelay.schemas.envelope import SessionAnnouncement
from toolrelay.utils import utcnow

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keepalive\n\n"

_CLOSE_SENTINEL = object()


class ChannelState(str, enum.Enum):
    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"


def _to_payload(envelope: Union[BaseModel, dict]) -> dict:
    if isinstance(envelope, BaseModel):
        return envelope.model_dump(mode="json", exclude_none=True)
    return envelope


def encode_frame(envelope: Union[BaseModel, dict]) -> str:
    """Wire text for one SSE ``data:`` frame carrying a JSON envelope.

    The JSON is ASCII-escaped so the frame can never contain a line break
    (U+2028, U+2029 and U+0085 included) and always stays one ``data:`` line.
    """
    return f"data: {json.dumps(_to_payload(envelope))}\n\n"


class PushChannel:
    """Outbound event stream for a single connected client."""

    def __init__(self, keepalive_seconds: float = 15.0, max_queued: int = 0):
        self.session_id: Optional[str] = None
        self.state = ChannelState.OPENING
        self.created_at = utcnow()
        self.keepalive_seconds = keepalive_seconds
        # 0 means unbounded
        self.max_queued = max_queued
        self._queue: asyncio.Queue = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN

    def open(self, session_id: str) -> None:
        """Enter OPEN and queue the session announcement as the first frame."""
        if self.state is not ChannelState.OPENING:
            raise RuntimeError(f"Cannot open channel in state {self.state.value}")
        self.session_id = session_id
        self.state = ChannelState.OPEN
        self._queue.put_nowait(SessionAnnouncement.for_session(session_id).to_wire())

    def send(self, envelope: Union[BaseModel, dict]) -> bool:
        """Queue an envelope for delivery. Returns False if the channel is not open.

        A subscriber that falls ``max_queued`` frames behind is cut off: the
        backlog is discarded and the channel closed.
        """
        if self.state is not ChannelState.OPEN:
            logger.debug(f"Dropped write on {self.state.value} channel (session={self.session_id})")
            return False
        if self.max_queued and self._queue.qsize() >= self.max_queued:
            logger.warning(
                f"Push channel {self.session_id} overflowed ({self.max_queued} frames queued); closing"
            )
            self.close(discard_pending=True)
            return False
        self._queue.put_nowait(_to_payload(envelope))
        return True

    def close(self, discard_pending: bool = False) -> None:
        if self.state is ChannelState.CLOSED:
            return
        self.state = ChannelState.CLOSED
        if discard_pending:
            while not self._queue.empty():
                self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE_SENTINEL)

    async def frames(self) -> AsyncIterator[Any]:
        """Yield queued payloads, or ``None`` for each idle keep-alive interval."""
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=self.keepalive_seconds)
            except asyncio.TimeoutError:
                if self.state is ChannelState.CLOSED:
                    return
                yield None
                continue
            if item is _CLOSE_SENTINEL:
                return
            yield item

    async def stream(self) -> AsyncIterator[str]:
        """SSE wire frames, with a comment frame when idle to keep proxies from timing out."""
        async for payload in self.frames():
            if payload is None:
                yield KEEPALIVE_FRAME
            else:
                yield encode_frame(payload)

    def __repr__(self) -> str:
        return f"<PushChannel session={self.session_id} state={self.state.value}>"
