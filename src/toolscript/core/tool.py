"""
@tool decorator and an in-process tool source.

Follows the pattern of:
- Pure Python decorators (no DSL)
- Automatic schema generation from type hints
- Works with or without decoration

LocalToolset exposes decorated functions through the same narrow interface
a remote tool registry offers (``list_tools`` / ``call_tool``), so the
engine can be driven without any tool server.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, TypeVar, Union, get_args, get_origin, get_type_hints, overload

from toolscript.core.types import ToolDescriptor
from toolscript.exceptions import ToolInvocationError, ToolNotFoundError

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


@dataclass
class ToolSpec:
    """Specification for a locally implemented tool."""

    name: str
    description: str
    func: Callable[..., Any]
    input_schema: dict[str, Any]

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )


def _generate_json_schema_from_hints(func: Callable[..., Any]) -> dict[str, Any]:
    """Generate JSON Schema from function type hints."""
    hints = get_type_hints(func)
    sig = inspect.signature(func)

    properties: dict[str, Any] = {}
    required: list[str] = []

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        properties[param_name] = _type_to_json_schema(hints.get(param_name, Any))

        # Check if required (no default value)
        if param.default is inspect.Parameter.empty:
            required.append(param_name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }


def _type_to_json_schema(type_hint: Any) -> dict[str, Any]:
    """Convert a Python type hint to JSON Schema."""
    origin = get_origin(type_hint)

    if type_hint is str:
        return {"type": "string"}
    elif type_hint is bool:
        return {"type": "boolean"}
    elif type_hint is int:
        return {"type": "integer"}
    elif type_hint is float:
        return {"type": "number"}
    elif type_hint is type(None):
        return {"type": "null"}
    elif type_hint is list or origin is list:
        args = get_args(type_hint)
        if args:
            return {"type": "array", "items": _type_to_json_schema(args[0])}
        return {"type": "array"}
    elif type_hint is dict or origin is dict:
        return {"type": "object"}
    elif origin is Literal:
        values = list(get_args(type_hint))
        if all(isinstance(v, str) for v in values):
            return {"type": "string", "enum": values}
        return {"enum": values}
    elif origin is Union or type(type_hint).__name__ == "UnionType":
        # Optional[T] collapses to T; other unions stay untyped
        non_none = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none) == 1:
            return _type_to_json_schema(non_none[0])
        return {}
    else:
        # Default to any
        return {}


@overload
def tool(func: F) -> F: ...


@overload
def tool(
    *,
    name: str | None = None,
    description: str | None = None,
) -> Callable[[F], F]: ...


def tool(
    func: F | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> F | Callable[[F], F]:
    """
    Decorator to define a tool callable from generated code.

    Can be used with or without arguments:

        @tool
        def search(query: str, limit: int = 10) -> list[dict]:
            '''Search the web.'''
            ...

        @tool(name="get-weather")
        async def weather(city: str) -> dict:
            '''Current weather for a city.'''
            ...

    The decorated function behaves as before and carries a ``_tool_spec``
    attribute; register it on a LocalToolset to make it dispatchable.

    Args:
        name: Tool name (defaults to function name)
        description: Tool description (defaults to docstring)
    """

    def decorator(fn: F) -> F:
        tool_name = name or fn.__name__
        tool_description = description or fn.__doc__ or f"Tool: {tool_name}"

        spec = ToolSpec(
            name=tool_name,
            description=inspect.cleandoc(tool_description),
            func=fn,
            input_schema=_generate_json_schema_from_hints(fn),
        )

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return fn(*args, **kwargs)

        wrapper._tool_spec = spec  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator


class LocalToolset:
    """In-process tool source backed by Python callables.

    Tools are listed in registration order. Registering a second tool under
    an existing name replaces the first.

    Example:
        toolset = LocalToolset()

        @toolset.register
        def add(a: int, b: int) -> int:
            '''Add two numbers.'''
            return a + b

        descriptors = toolset.list_tools()
        result = await toolset.call_tool("add", {"a": 1, "b": 2})
    """

    def __init__(self, tools: list[Callable[..., Any]] | None = None) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for fn in tools or []:
            self.register(fn)

    def register(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Register a callable (decorated with @tool or plain) and return it."""
        spec = getattr(fn, "_tool_spec", None)
        if spec is None:
            fn = tool(fn)
            spec = fn._tool_spec  # type: ignore[attr-defined]
        self._specs.pop(spec.name, None)
        self._specs[spec.name] = spec
        return fn

    def unregister(self, name: str) -> bool:
        return self._specs.pop(name, None) is not None

    def list_tools(self) -> list[ToolDescriptor]:
        return [spec.descriptor() for spec in self._specs.values()]

    async def call_tool(self, name: str, tool_input: Any = None) -> Any:
        """Run one tool with a mapping of keyword arguments.

        Raises:
            ToolNotFoundError: No tool with that name is registered.
            ToolInvocationError: The input is not a mapping or the tool raised.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ToolNotFoundError(
                f"Tool not found: {name}. Available tools: {list(self._specs)}",
                tool_name=name,
            )

        if tool_input is None:
            tool_input = {}
        if not isinstance(tool_input, dict):
            raise ToolInvocationError(
                f"Tool '{name}' expects a mapping of arguments, got {type(tool_input).__name__}",
                tool_name=name,
            )

        logger.debug("Calling local tool %s", name)
        try:
            if asyncio.iscoroutinefunction(spec.func):
                return await spec.func(**tool_input)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, lambda: spec.func(**tool_input))
        except Exception as e:
            raise ToolInvocationError(
                f"Tool '{name}' failed: {e}",
                tool_name=name,
                tool_input=tool_input,
                cause=e,
            ) from e
