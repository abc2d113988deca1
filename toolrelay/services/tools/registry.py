"""ToolRegistry — named async tool handlers with JSON Schema input descriptions.

Tools are registered either explicitly:

    registry.register("add", "Adds two numbers.", {"type": "object", ...}, add_handler)

or with the decorator, which generates the input schema from the signature:

    @registry.tool(name="add", description="Adds two numbers.", module="arithmetic")
    async def add(a: float, b: float) -> str:
        ...

Handlers receive the call arguments as keyword arguments. A first parameter
annotated as ``ToolContext`` is injected at call time and left out of the schema.
"""
from __future__ import annotations

import inspect
import json
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, get_type_hints

from toolrelay.core.errors import InvalidArgumentsError, ToolNotFoundError
from toolrelay.schemas.envelope import ToolDescriptor, ToolResult
from toolrelay.services.tools.tool_context import ToolContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Type → JSON Schema mapping
# ---------------------------------------------------------------------------

_TYPE_MAP: dict[type, dict] = {
    str: {"type": "string"},
    int: {"type": "integer"},
    float: {"type": "number"},
    bool: {"type": "boolean"},
    list: {"type": "array"},
    dict: {"type": "object"},
}

_UNION_TYPES = (typing.Union, types.UnionType)


def _is_optional(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin in _UNION_TYPES and type(None) in typing.get_args(tp)


def _python_type_to_json_schema(tp: Any) -> dict:
    """Convert a Python type hint to JSON Schema."""
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    # Optional[X] = Union[X, None]
    if origin in _UNION_TYPES:
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return _python_type_to_json_schema(non_none[0])
        # Multi-type union, fall back to string
        return {"type": "string"}

    # list[X]
    if origin is list:
        if args:
            return {"type": "array", "items": _python_type_to_json_schema(args[0])}
        return {"type": "array"}

    # dict[str, X]
    if origin is dict:
        return {"type": "object"}

    if origin is typing.Literal:
        return {"type": "string", "enum": list(args)}

    if tp in _TYPE_MAP:
        return dict(_TYPE_MAP[tp])

    # Pydantic model → use its JSON schema
    if hasattr(tp, "model_json_schema"):
        return tp.model_json_schema()

    return {"type": "string"}


def _generate_parameters_schema(func: Callable) -> dict:
    """Auto-generate JSON Schema from function signature.

    Skips a parameter typed as ToolContext (injected at runtime).
    """
    sig = inspect.signature(func)
    hints = get_type_hints(func)
    doc = func.__doc__ or ""

    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, param in sig.parameters.items():
        if hints.get(name) is ToolContext:
            continue

        if param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue

        tp = hints.get(name, str)
        schema = _python_type_to_json_schema(tp)

        # Description from docstring "name: ..." lines
        for line in doc.split("\n"):
            stripped = line.strip()
            if stripped.startswith(f"{name}:") or stripped.startswith(f"{name} :"):
                schema["description"] = stripped.split(":", 1)[1].strip()
                break

        properties[name] = schema

        if param.default is inspect.Parameter.empty and not _is_optional(tp):
            required.append(name)

    schema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

_JSON_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}


# ---------------------------------------------------------------------------
# ToolDefinition dataclass
# ---------------------------------------------------------------------------

@dataclass
class ToolDefinition:
    """A registered tool that clients can invoke with ``tools/call``."""

    name: str
    description: str
    handler: Callable[..., Awaitable[Any]]
    input_schema: dict
    module: str = "general"

    def __post_init__(self):
        sig = inspect.signature(self.handler)
        try:
            hints = get_type_hints(self.handler)
        except (NameError, TypeError):
            hints = {}
        params = list(sig.parameters.values())
        self.accepts_context = bool(params) and hints.get(params[0].name) is ToolContext
        if self.accepts_context:
            params = params[1:]
        self.accepts_extra = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params)
        self.parameter_names = {
            p.name for p in params
            if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
        }

    def to_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )

    def validate_arguments(self, arguments: dict) -> None:
        properties = self.input_schema.get("properties", {})

        missing = [n for n in self.input_schema.get("required", []) if n not in arguments]
        if missing:
            raise InvalidArgumentsError(
                f"Missing required argument(s) for '{self.name}': {', '.join(missing)}"
            )

        if not self.accepts_extra:
            unknown = sorted(k for k in arguments if k not in self.parameter_names)
            if unknown:
                raise InvalidArgumentsError(
                    f"Unexpected argument(s) for '{self.name}': {', '.join(unknown)}"
                )

        for key, value in arguments.items():
            prop = properties.get(key) or {}
            if value is None:
                continue
            check = _JSON_TYPE_CHECKS.get(prop.get("type"))
            if check and not check(value):
                raise InvalidArgumentsError(f"Argument '{key}' must be of type {prop['type']}")
            if "enum" in prop and value not in prop["enum"]:
                raise InvalidArgumentsError(
                    f"Argument '{key}' must be one of: {', '.join(map(str, prop['enum']))}"
                )


def _to_tool_result(value: Any) -> ToolResult:
    """Normalise a handler's return value into a ToolResult."""
    if isinstance(value, ToolResult):
        return value
    if isinstance(value, dict) and "content" in value:
        return ToolResult.model_validate(value)
    if isinstance(value, str):
        return ToolResult.text(value)
    if isinstance(value, (dict, list)):
        return ToolResult.text(json.dumps(value, default=str), format="json")
    return ToolResult.text(str(value))


# ---------------------------------------------------------------------------
# ToolRegistry
# ---------------------------------------------------------------------------

class ToolRegistry:
    """Collect and invoke tool definitions."""

    def __init__(self):
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        input_schema: Optional[dict],
        handler: Callable[..., Awaitable[Any]],
        module: str = "general",
    ) -> ToolDefinition:
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Tool handler for '{name}' must be an async function")
        if name in self._tools:
            logger.warning(f"Tool '{name}' re-registered; replacing previous handler")
        defn = ToolDefinition(
            name=name,
            description=description,
            handler=handler,
            input_schema=input_schema or _generate_parameters_schema(handler),
            module=module,
        )
        self._tools[name] = defn
        logger.info(f"Registered tool: {name} (module={module})")
        return defn

    # -- Decorator --

    def tool(
        self,
        name: str,
        description: str,
        module: str = "general",
        input_schema: Optional[dict] = None,
    ) -> Callable:
        """Register an async function as a callable tool.

        Example:
            @registry.tool(name="fetch_product", description="...", module="products")
            async def fetch_product(ctx: ToolContext, id: int) -> dict: ...
        """

        def decorator(func: Callable[..., Awaitable[Any]]) -> Callable:
            self.register(name, description, input_schema, func, module=module)
            return func

        return decorator

    # -- Lookups --

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def get_all_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def list_descriptors(self) -> list[ToolDescriptor]:
        return [t.to_descriptor() for t in self._tools.values()]

    # -- Tool execution --

    async def call(
        self,
        name: str,
        arguments: Optional[dict] = None,
        ctx: Optional[ToolContext] = None,
    ) -> ToolResult:
        """Execute a tool by name.

        Raises ToolNotFoundError / InvalidArgumentsError before the handler
        runs; anything the handler raises propagates to the caller.
        """
        tool_def = self.get_tool(name)
        if not tool_def:
            raise ToolNotFoundError(name)

        arguments = arguments or {}
        tool_def.validate_arguments(arguments)

        if tool_def.accepts_context:
            result = await tool_def.handler(ctx or ToolContext(message_id=""), **arguments)
        else:
            result = await tool_def.handler(**arguments)
        return _to_tool_result(result)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        tools = ", ".join(self._tools.keys())
        return f"<ToolRegistry tools=[{tools}]>"


# Default registry, populated by the built-in tool modules
registry = ToolRegistry()
