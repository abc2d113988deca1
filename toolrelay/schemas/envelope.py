"""Pydantic schemas for the wire envelopes.

Request channel (client → server):
    {jsonrpc: "2.0", method: "tools/call" | "tools/list",
     params: {name?, arguments?, sessionId}, id: "..."}

Push channel (server → client):
    {params: {sessionId: "..."}}                          session announcement
    {jsonrpc: "2.0", id: "...", result: {...}}            tagged result
    {jsonrpc: "2.0", id: "...", error: {code, message}}   tagged error
"""
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

JSONRPC_VERSION = "2.0"

Method = Literal["tools/call", "tools/list"]


class _Envelope(BaseModel):
    def to_wire(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Request channel
# ---------------------------------------------------------------------------


class RequestParams(BaseModel):
    name: Optional[str] = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    sessionId: Optional[str] = None


class RequestEnvelope(_Envelope):
    jsonrpc: Literal["2.0"]
    method: Method
    params: RequestParams = Field(default_factory=RequestParams)
    id: str = Field(min_length=1)

    @model_validator(mode="after")
    def _call_requires_tool_name(self) -> "RequestEnvelope":
        if self.method == "tools/call" and not self.params.name:
            raise ValueError("tools/call requires params.name")
        return self


# ---------------------------------------------------------------------------
# Tool results
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str
    format: Optional[Literal["text", "json"]] = None


class ToolResult(BaseModel):
    content: list[TextContent]
    isError: bool = False

    @classmethod
    def text(cls, text: str, format: Optional[str] = None) -> "ToolResult":
        return cls(content=[TextContent(text=text, format=format)])


class ToolDescriptor(BaseModel):
    name: str
    description: str
    inputSchema: dict[str, Any]


class ToolList(BaseModel):
    tools: list[ToolDescriptor]


# ---------------------------------------------------------------------------
# Push channel
# ---------------------------------------------------------------------------


class SessionInfo(BaseModel):
    sessionId: str


class SessionAnnouncement(_Envelope):
    params: SessionInfo

    @classmethod
    def for_session(cls, session_id: str) -> "SessionAnnouncement":
        return cls(params=SessionInfo(sessionId=session_id))


class ResultEnvelope(_Envelope):
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: str
    result: Union[ToolResult, ToolList]


class ErrorObject(BaseModel):
    code: int
    message: str
    data: Any = None


class ErrorEnvelope(_Envelope):
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: str
    error: ErrorObject

    @classmethod
    def build(cls, message_id: str, code: int, message: str, data: Any = None) -> "ErrorEnvelope":
        return cls(id=message_id, error=ErrorObject(code=code, message=message, data=data))


PushFrame = Union[SessionAnnouncement, ResultEnvelope, ErrorEnvelope]
TaggedEnvelope = Union[ResultEnvelope, ErrorEnvelope]


def parse_push_frame(data: Any) -> PushFrame:
    """Validate one decoded push-channel frame into its envelope type.

    Raises ``ValueError`` (pydantic ``ValidationError`` is a subclass) when
    the frame matches none of the three shapes.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Push frame must be a JSON object, got {type(data).__name__}")
    if "error" in data:
        return ErrorEnvelope.model_validate(data)
    if "result" in data:
        return ResultEnvelope.model_validate(data)
    if "params" in data and "id" not in data:
        return SessionAnnouncement.model_validate(data)
    raise ValueError(f"Unrecognized push frame: {sorted(data)}")
