"""Tool system — decorator-based tool registration for ``tools/call``.

Usage:
    from toolrelay.services.tools import registry, ToolContext

    @registry.tool(name="my_tool", description="Does something")
    async def my_tool(ctx: ToolContext, arg: str) -> str:
        return f"Result for {arg}"
"""
import importlib

from toolrelay.services.tools.registry import registry, ToolRegistry, ToolDefinition
from toolrelay.services.tools.tool_context import ToolContext

BUILTIN_TOOL_MODULES = (
    "toolrelay.services.tools.arithmetic_tools",
    "toolrelay.services.tools.time_tools",
    "toolrelay.services.tools.product_tools",
    "toolrelay.services.tools.jira_tools",
)


def load_builtin_tools() -> ToolRegistry:
    """Import the built-in tool modules (registration happens on import)."""
    for module in BUILTIN_TOOL_MODULES:
        importlib.import_module(module)
    return registry


__all__ = [
    "registry",
    "load_builtin_tools",
    "ToolRegistry",
    "ToolDefinition",
    "ToolContext",
]
