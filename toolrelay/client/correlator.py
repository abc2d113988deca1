"""Client correlator — subscribe to the push channel, submit calls, match replies.

Lifecycle: CONNECTING → READY → CLOSED.

    async with ToolClient("http://localhost:8000") as client:
        result = await client.call_tool("add", {"a": 2, "b": 3})
        print(result.content[0].text)           # "5"

Calls submitted while CONNECTING wait on a one-shot gate until the session
announcement arrives. Each call registers a PendingCall under its message id
before the request is sent; the reply frame carrying that id resolves it
exactly once. When the push channel ends, every call still pending is failed
with a ``CHANNEL_CLOSED`` error envelope rather than left hanging.
"""
import asyncio
import enum
import inspect
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Optional

import httpx

from toolrelay.config import settings
from toolrelay.core.errors import (
    CHANNEL_CLOSED,
    INVALID_REQUEST,
    ChannelClosedError,
    RequestRejectedError,
    ToolCallError,
)
from toolrelay.schemas.envelope import (
    JSONRPC_VERSION,
    ErrorEnvelope,
    RequestEnvelope,
    RequestParams,
    SessionAnnouncement,
    TaggedEnvelope,
    ToolDescriptor,
    ToolList,
    ToolResult,
    parse_push_frame,
)
from toolrelay.utils import utcnow

logger = logging.getLogger(__name__)

SSE_PATH = "/sse"
MESSAGES_PATH = "/messages"

# Local codes for calls the request channel refused
SESSION_NOT_FOUND = -32001
REQUEST_REJECTED = -32002

Callback = Callable[[TaggedEnvelope], Any]

# SSE line terminators. Unicode separators such as U+2028 are ordinary text.
_SSE_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ClientState(str, enum.Enum):
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class PendingCall:
    """An outstanding call awaiting its tagged reply."""

    message_id: str
    future: asyncio.Future
    callback: Optional[Callback] = None
    created_at: datetime = field(default_factory=utcnow)
    # Holds running async callbacks so they are not garbage-collected mid-run
    background: set = field(default_factory=set)

    def resolve(self, envelope: TaggedEnvelope) -> bool:
        """Complete the call. Returns False if it was already completed."""
        if self.future.done():
            return False
        self.future.set_result(envelope)
        if self.callback is not None:
            try:
                outcome = self.callback(envelope)
                if inspect.isawaitable(outcome):
                    task = asyncio.ensure_future(outcome)
                    self.background.add(task)
                    task.add_done_callback(self.background.discard)
                    task.add_done_callback(self._log_callback_failure)
            except Exception:
                logger.exception(f"Callback for message {self.message_id} failed")
        return True

    def _log_callback_failure(self, task: asyncio.Future) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Callback for message {self.message_id} failed: {task.exception()}",
                exc_info=task.exception(),
            )


def _rejection_code(status_code: int) -> int:
    if status_code == 400:
        return INVALID_REQUEST
    if status_code == 404:
        return SESSION_NOT_FOUND
    return REQUEST_REJECTED


async def iter_sse_lines(response: httpx.Response) -> AsyncIterator[str]:
    """Lines of an event stream, split only on CRLF, LF or CR."""
    buffer = ""
    async for chunk in response.aiter_text():
        buffer += chunk
        # a trailing CR may be the first half of a CRLF
        held = ""
        if buffer.endswith("\r"):
            buffer, held = buffer[:-1], "\r"
        lines = _SSE_LINE_BREAK.split(buffer)
        buffer = lines.pop() + held
        for line in lines:
            yield line
    buffer = buffer.removesuffix("\r")
    if buffer:
        yield buffer


class ToolClient:
    """Async client for a relay server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        call_timeout: Optional[float] = None,
        sse_path: str = SSE_PATH,
        messages_path: str = MESSAGES_PATH,
    ):
        self.base_url = (base_url or settings.server_url).rstrip("/")
        self.sse_path = sse_path
        self.messages_path = messages_path
        self.call_timeout = call_timeout if call_timeout is not None else settings.client_call_timeout

        # The push stream stays open indefinitely, so no read timeout
        self._http = http or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(settings.request_timeout, read=None),
        )
        self._owns_http = http is None

        self.state = ClientState.CONNECTING
        self.session_id: Optional[str] = None
        self._ready = asyncio.Event()
        self._pending: dict[str, PendingCall] = {}
        self._reader: Optional[asyncio.Task] = None
        self._callback_tasks: set = set()

    # -- lifecycle --

    async def connect(self, timeout: Optional[float] = None) -> str:
        """Open the push channel and wait for the session announcement."""
        self._ensure_reader()
        await self.wait_ready(timeout)
        return self.session_id

    def _ensure_reader(self) -> None:
        if self.state is ClientState.CLOSED:
            raise ChannelClosedError("Client is closed", self.session_id)
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_push_channel(), name="toolrelay-push-reader")

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        if timeout is None:
            await self._ready.wait()
        else:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        if self.state is not ClientState.READY:
            raise ChannelClosedError("Push channel closed before a session was announced", self.session_id)

    async def close(self) -> None:
        """Stop the push subscription and fail whatever is still pending."""
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._on_channel_closed("Client closed")
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ToolClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # -- push channel --

    async def _read_push_channel(self) -> None:
        reason = "Push channel closed by server"
        try:
            async with self._http.stream(
                "GET", self.sse_path, headers={"Accept": "text/event-stream"}
            ) as response:
                response.raise_for_status()
                data_lines: list[str] = []
                async for line in iter_sse_lines(response):
                    if not line:
                        # blank line ends an event
                        if data_lines:
                            self._on_frame("\n".join(data_lines))
                            data_lines = []
                        continue
                    if line.startswith(":"):
                        continue
                    if line.startswith("data:"):
                        data_lines.append(line[5:].lstrip())
                if data_lines:
                    self._on_frame("\n".join(data_lines))
        except asyncio.CancelledError:
            reason = "Client closed"
            raise
        except httpx.HTTPError as e:
            reason = f"Push channel failed: {e}"
            logger.error(f"SSE error: {e}")
        finally:
            self._on_channel_closed(reason)

    def _on_frame(self, raw: str) -> None:
        try:
            frame = parse_push_frame(json.loads(raw))
        except ValueError as e:
            logger.warning(f"Discarding malformed push frame: {e}")
            return

        if isinstance(frame, SessionAnnouncement):
            self._on_session(frame.params.sessionId)
            return

        pending = self._pending.pop(frame.id, None)
        if pending is None:
            logger.warning(f"No pending call for message {frame.id}; discarding reply")
            return
        pending.resolve(frame)

    def _on_session(self, session_id: str) -> None:
        if self.state is not ClientState.CONNECTING:
            logger.warning(f"Ignoring repeated session announcement {session_id} (state={self.state.value})")
            return
        self.session_id = session_id
        self.state = ClientState.READY
        self._ready.set()
        logger.info(f"Session established: {session_id}")

    def _on_channel_closed(self, reason: str) -> None:
        if self.state is not ClientState.CLOSED:
            logger.info(f"Push channel closed (session={self.session_id}): {reason}")
        self.state = ClientState.CLOSED
        self._ready.set()
        orphans = list(self._pending.values())
        self._pending.clear()
        for pending in orphans:
            pending.resolve(ErrorEnvelope.build(pending.message_id, CHANNEL_CLOSED, reason))

    # -- request channel --

    async def _submit(
        self,
        method: str,
        params: RequestParams,
        message_id: Optional[str],
        callback: Optional[Callback],
    ) -> PendingCall:
        self._ensure_reader()
        await self.wait_ready()

        message_id = message_id or str(uuid.uuid4())
        if message_id in self._pending:
            raise ValueError(f"Message id already outstanding: {message_id}")

        params.sessionId = self.session_id
        envelope = RequestEnvelope(jsonrpc=JSONRPC_VERSION, method=method, params=params, id=message_id)

        pending = PendingCall(
            message_id,
            asyncio.get_running_loop().create_future(),
            callback,
            background=self._callback_tasks,
        )
        self._pending[message_id] = pending

        try:
            response = await self._http.post(self.messages_path, json=envelope.to_wire())
        except httpx.HTTPError as e:
            logger.error(f"Error invoking tool: {e}")
            self._reject(message_id, REQUEST_REJECTED, f"Request channel failed: {e}")
            return pending

        if response.is_success:
            logger.debug(f"Message {message_id} accepted: {response.text}")
        else:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"Message {message_id} rejected with HTTP {response.status_code}: {body}")
            self._reject(
                message_id,
                _rejection_code(response.status_code),
                f"Request rejected with HTTP {response.status_code}",
                {"status_code": response.status_code, "response": body},
            )
        return pending

    def _reject(self, message_id: str, code: int, message: str, data: Any = None) -> None:
        pending = self._pending.pop(message_id, None)
        if pending is not None:
            pending.resolve(ErrorEnvelope.build(message_id, code, message, data))

    async def invoke(
        self,
        tool_name: str,
        arguments: Optional[dict] = None,
        message_id: Optional[str] = None,
        callback: Optional[Callback] = None,
    ) -> asyncio.Future:
        """Submit a ``tools/call``.

        Returns a future that resolves to the call's ResultEnvelope or
        ErrorEnvelope; ``callback`` (sync or async) receives the same envelope,
        exactly once.
        """
        pending = await self._submit(
            "tools/call", RequestParams(name=tool_name, arguments=arguments or {}), message_id, callback
        )
        return pending.future

    async def _await_reply(self, pending: PendingCall, timeout: Optional[float]) -> TaggedEnvelope:
        timeout = timeout if timeout is not None else self.call_timeout
        if timeout is None:
            return await pending.future
        try:
            return await asyncio.wait_for(asyncio.shield(pending.future), timeout=timeout)
        except asyncio.TimeoutError:
            # Abandon: a late reply for this id is discarded
            self._pending.pop(pending.message_id, None)
            logger.warning(f"Gave up waiting for message {pending.message_id} after {timeout}s")
            raise

    @staticmethod
    def _raise_for_error(envelope: ErrorEnvelope) -> None:
        err = envelope.error
        if err.code == CHANNEL_CLOSED:
            raise ChannelClosedError(err.message)
        if isinstance(err.data, dict) and "status_code" in err.data:
            raise RequestRejectedError(err.message, err.data["status_code"], err.data.get("response"))
        raise ToolCallError(err.code, err.message, err.data)

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> ToolResult:
        """Call a tool and wait for its result.

        Raises ToolCallError for an error envelope, RequestRejectedError when
        the request channel refuses the call, ChannelClosedError when the push
        channel ends first, and asyncio.TimeoutError when ``timeout`` elapses.
        """
        pending = await self._submit("tools/call", RequestParams(name=name, arguments=arguments or {}), None, None)
        envelope = await self._await_reply(pending, timeout)
        if isinstance(envelope, ErrorEnvelope):
            self._raise_for_error(envelope)
        if not isinstance(envelope.result, ToolResult):
            raise ToolCallError(REQUEST_REJECTED, f"Unexpected result shape for '{name}'")
        return envelope.result

    async def fetch_tools(self, timeout: Optional[float] = None) -> list[ToolDescriptor]:
        """List the server's registered tools."""
        pending = await self._submit("tools/list", RequestParams(), None, None)
        envelope = await self._await_reply(pending, timeout)
        if isinstance(envelope, ErrorEnvelope):
            self._raise_for_error(envelope)
        if not isinstance(envelope.result, ToolList):
            raise ToolCallError(REQUEST_REJECTED, "Unexpected result shape for tools/list")
        return envelope.result.tools
