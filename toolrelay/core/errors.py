"""Error taxonomy for the relay protocol.

JSON-RPC 2.0 codes are used for every error envelope delivered over the
push channel. HTTP status codes are only used for the synchronous
acknowledgement of the request channel.
"""
from typing import Any, Optional

# ---------------------------------------------------------------------------
# JSON-RPC error codes
# ---------------------------------------------------------------------------

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
CHANNEL_CLOSED = -32000


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ToolError(Exception):
    """Typed failure raised by a tool handler.

    Converted by the dispatcher into an error envelope carrying ``code``
    and ``message``; never propagated to the HTTP layer.
    """

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class ToolNotFoundError(ToolError):
    def __init__(self, name: str):
        super().__init__(METHOD_NOT_FOUND, f"Tool not found: {name}")
        self.name = name


class InvalidArgumentsError(ToolError):
    def __init__(self, message: str):
        super().__init__(INVALID_PARAMS, message)


class ChannelClosedError(Exception):
    """The push channel ended before a reply for a pending call arrived."""

    def __init__(self, message: str = "Push channel closed", session_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.session_id = session_id


class RequestRejectedError(Exception):
    """The request channel refused a call (malformed, unknown session, dispatch failure)."""

    def __init__(self, message: str, status_code: int, response: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ToolCallError(Exception):
    """A tagged error envelope was delivered for a call."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data
