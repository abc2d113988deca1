"""Clock tool."""
from __future__ import annotations

import json
from typing import Literal

from toolrelay.schemas.envelope import ToolResult
from toolrelay.services.tools.registry import registry
from toolrelay.utils import utcnow


@registry.tool(
    name="get_current_time",
    description=(
        "Returns the current date and time as an ISO 8601 string, local time, "
        "Unix timestamp, or a detailed JSON object with all of them."
    ),
    module="time",
)
async def get_current_time(format: Literal["iso", "local", "unix", "detailed"] = "detailed") -> ToolResult:
    """
    format: Output format, one of 'iso', 'local', 'unix', 'detailed'. Defaults to 'detailed'.
    """
    now = utcnow()
    local = now.astimezone()

    if format == "iso":
        return ToolResult.text(now.isoformat(), format="text")
    if format == "local":
        return ToolResult.text(local.strftime("%c"), format="text")
    if format == "unix":
        return ToolResult.text(str(int(now.timestamp())), format="text")

    detailed = {
        "iso": now.isoformat(),
        "local": local.strftime("%c"),
        "unix": int(now.timestamp()),
        "utc": now.strftime("%a, %d %b %Y %H:%M:%S GMT"),
        "date": local.strftime("%a %b %d %Y"),
        "time": local.strftime("%H:%M:%S %Z"),
    }
    return ToolResult.text(json.dumps(detailed, indent=2), format="json")
