"""Request endpoint — POST /messages submits one call for an open session.

The response only acknowledges receipt; the call's result is delivered
later on the session's push channel, tagged with the envelope's id.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from toolrelay.core.errors import INVALID_REQUEST, PARSE_ERROR
from toolrelay.schemas.envelope import JSONRPC_VERSION, RequestEnvelope

logger = logging.getLogger(__name__)

router = APIRouter()

SESSION_NOT_FOUND = "SSE transport session id not found"


def _rpc_error(code: int, message: str, data=None, message_id=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JSONResponse(
        {"jsonrpc": JSONRPC_VERSION, "id": message_id, "error": error},
        status_code=400,
    )


@router.post("/messages")
async def post_message(request: Request, sessionId: Optional[str] = Query(default=None)):
    state = request.app.state

    # 1. Parse
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Rejected message: body is not valid JSON")
        return _rpc_error(PARSE_ERROR, "Parse error")

    try:
        envelope = RequestEnvelope.model_validate(body)
    except ValidationError as e:
        details = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
            for err in e.errors()
        ]
        message_id = body.get("id") if isinstance(body, dict) and isinstance(body.get("id"), str) else None
        logger.warning(f"Rejected malformed message (id={message_id}): {details}")
        return _rpc_error(INVALID_REQUEST, "Invalid request", details, message_id)

    logger.info(f"Received message: {envelope.method} (id={envelope.id})")

    # 2. Route: the session must belong to a live push channel
    session_id = envelope.params.sessionId or sessionId
    channel = state.transports.lookup(session_id)
    if channel is None or not channel.is_open:
        logger.error(f"SSE transport session id not found: {session_id}")
        return JSONResponse({"error": SESSION_NOT_FOUND}, status_code=404)

    # 3. Dispatch in the background; the reply travels over the push channel
    coro = state.dispatcher.dispatch(envelope, channel)
    try:
        state.tasks.create_task(coro, name=f"dispatch-{envelope.id}", session_id=session_id)
    except Exception:
        coro.close()
        logger.exception("Error handling SSE message")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": envelope.id,
        "status": "accepted",
        "sessionId": session_id,
    }
