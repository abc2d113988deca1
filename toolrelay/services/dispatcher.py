"""Dispatcher — runs one accepted request and pushes its tagged reply.

Every dispatch produces exactly one envelope for the request's message id:
a ResultEnvelope on success, an ErrorEnvelope for any failure (unknown tool,
bad arguments, a ToolError, or an unexpected exception in the handler).
"""
import logging
from typing import Optional

from toolrelay.config import Settings, settings as default_settings
from toolrelay.core.errors import INTERNAL_ERROR, ToolError
from toolrelay.core.push_channel import PushChannel
from toolrelay.schemas.envelope import (
    ErrorEnvelope,
    RequestEnvelope,
    ResultEnvelope,
    TaggedEnvelope,
    ToolList,
)
from toolrelay.services.tools.registry import ToolRegistry
from toolrelay.services.tools.tool_context import ToolContext

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, tools: ToolRegistry, settings: Optional[Settings] = None):
        self.tools = tools
        self.settings = settings or default_settings

    async def handle(self, envelope: RequestEnvelope, session_id: Optional[str] = None) -> TaggedEnvelope:
        """Execute the request and build its reply envelope. Never raises for tool failures."""
        message_id = envelope.id

        if envelope.method == "tools/list":
            return ResultEnvelope(id=message_id, result=ToolList(tools=self.tools.list_descriptors()))

        name = envelope.params.name
        ctx = ToolContext(message_id=message_id, session_id=session_id, settings=self.settings)
        logger.info(f"tools/call '{name}' (session={session_id}, message={message_id})")
        try:
            result = await self.tools.call(name, envelope.params.arguments, ctx)
        except ToolError as e:
            logger.warning(f"Tool '{name}' failed (message={message_id}): [{e.code}] {e.message}")
            return ErrorEnvelope.build(message_id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception(f"Tool '{name}' execution failed (message={message_id})")
            return ErrorEnvelope.build(message_id, INTERNAL_ERROR, f"Error executing '{name}': {e}")
        return ResultEnvelope(id=message_id, result=result)

    async def dispatch(self, envelope: RequestEnvelope, channel: PushChannel) -> TaggedEnvelope:
        """Handle the request and deliver the reply on the session's push channel."""
        reply = await self.handle(envelope, session_id=channel.session_id)
        if not channel.send(reply):
            logger.warning(
                f"Reply for message {envelope.id} dropped: session {channel.session_id} is closed"
            )
        return reply
