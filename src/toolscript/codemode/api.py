"""
API surface generation for code mode.

Turns an ordered list of tool descriptors into:

- a binding table: one async callable per tool that forwards its single
  input argument to an injected ``dispatch(name, input)`` function, and
- interface text: Python typing stubs (one ``TypedDict`` input shape per
  tool plus one annotated ``async def`` per tool) shown to the model so it
  knows what it can call.

Both are pure functions of their inputs. Generating the interface text twice
from the same list in the same order gives byte-identical output.
"""

from __future__ import annotations

import keyword
from typing import Any, Iterable, Mapping, Sequence

from toolscript.core.naming import pascal_case, python_identifier, unique_identifiers
from toolscript.core.types import Dispatch, ToolBinding, ToolDescriptor
from toolscript.exceptions import ToolInvocationError

NO_TOOLS_TEXT = "# No tools available"


# =============================================================================
# Runtime bindings
# =============================================================================


def _raise_for_error_result(name: str, tool_input: Any, result: Any) -> None:
    """Raise when a dispatcher reports failure in-band (MCP ``isError`` results)."""
    if not isinstance(result, Mapping) or not result.get("isError"):
        return
    content = result.get("content") or []
    texts = [
        str(item.get("text", "")) if isinstance(item, Mapping) else str(item)
        for item in content
    ]
    message = "\n".join(t for t in texts if t) or "Tool execution failed"
    raise ToolInvocationError(message, tool_name=name, tool_input=tool_input)


def _make_binding(name: str, dispatch: Dispatch) -> ToolBinding:
    async def binding(tool_input: Any = None) -> Any:
        result = await dispatch(name, tool_input)
        _raise_for_error_result(name, tool_input, result)
        return result

    binding.__name__ = python_identifier(name)
    binding.__qualname__ = f"tools.{binding.__name__}"
    return binding


def build_bindings(
    descriptors: Iterable[ToolDescriptor],
    dispatch: Dispatch,
) -> dict[str, ToolBinding]:
    """
    Build the runtime binding table for a list of tool descriptors.

    Each binding forwards its input to ``dispatch(name, input)`` and returns
    the dispatch result unchanged. Nothing is cached, retried or validated:
    two calls with equal input are two dispatch calls, and input validation
    belongs to the dispatcher.

    A later descriptor with the same name as an earlier one replaces its
    binding. Callers that need unique names enforce it before this point.

    Args:
        descriptors: Tool descriptors, in order.
        dispatch: Coroutine function ``dispatch(name, input)`` that performs
            the call and raises on failure.

    Returns:
        Mapping of tool name to async callable.
    """
    bindings: dict[str, ToolBinding] = {}
    for descriptor in descriptors:
        bindings[descriptor.name] = _make_binding(descriptor.name, dispatch)
    return bindings


# =============================================================================
# Interface text
# =============================================================================


def schema_to_type(schema: Mapping[str, Any] | None) -> str:
    """Map a JSON-schema fragment to a Python type expression."""
    if not isinstance(schema, Mapping):
        return "Any"

    schema_type = schema.get("type")
    if schema_type == "string":
        values = schema.get("enum")
        if values:
            return "Literal[" + ", ".join(repr(v) for v in values) + "]"
        return "str"
    if schema_type == "integer":
        return "int"
    if schema_type == "number":
        return "float"
    if schema_type == "boolean":
        return "bool"
    if schema_type == "array":
        items = schema.get("items")
        item_type = schema_to_type(items) if items else "Any"
        return f"list[{item_type}]"
    if schema_type == "object":
        return "dict[str, Any]"
    return "Any"


def _one_line(text: str) -> str:
    return " ".join(str(text).split())


def _input_shape(type_name: str, schema: Mapping[str, Any]) -> str:
    """Render the TypedDict declaration for one tool's input."""
    properties = schema.get("properties") if isinstance(schema, Mapping) else None
    if not properties:
        return f"{type_name} = dict[str, Any]"

    required = schema.get("required") or []
    fields: list[tuple[str, str, str]] = []
    for prop_name, prop_schema in properties.items():
        prop_type = schema_to_type(prop_schema)
        if prop_name not in required:
            prop_type = f"NotRequired[{prop_type}]"
        description = ""
        if isinstance(prop_schema, Mapping) and prop_schema.get("description"):
            description = _one_line(prop_schema["description"])
        fields.append((prop_name, prop_type, description))

    if all(name.isidentifier() and not keyword.iskeyword(name) for name, _, _ in fields):
        lines = [f"class {type_name}(TypedDict):"]
        for name, prop_type, description in fields:
            comment = f"  # {description}" if description else ""
            lines.append(f"    {name}: {prop_type}{comment}")
        return "\n".join(lines)

    # Keys that are not identifiers need the functional form
    lines = [f"{type_name} = TypedDict(", f"    {type_name!r},", "    {"]
    for name, prop_type, description in fields:
        comment = f"  # {description}" if description else ""
        lines.append(f"        {name!r}: {prop_type},{comment}")
    lines.extend(["    },", ")"])
    return "\n".join(lines)


def _method_stub(descriptor: ToolDescriptor, type_name: str, method_name: str) -> str:
    """Render the annotated async signature and docstring for one tool."""
    doc: list[str] = []
    if descriptor.description:
        doc.extend(str(descriptor.description).replace('"""', "'''").strip().splitlines())

    properties = (descriptor.input_schema or {}).get("properties") or {}
    arg_lines = [
        f'    input["{name}"]: {_one_line(prop["description"])}'
        for name, prop in properties.items()
        if isinstance(prop, Mapping) and prop.get("description")
    ]
    if arg_lines:
        if doc:
            doc.append("")
        doc.append("Args:")
        doc.extend(arg_lines)
    if method_name != descriptor.name:
        if doc:
            doc.append("")
        doc.append(f'Also available as tools["{descriptor.name}"].')

    lines = [f"    async def {method_name}(self, input: {type_name}) -> Any:"]
    if doc:
        lines.append(f'        """{doc[0]}'.rstrip())
        for line in doc[1:]:
            lines.append(f"        {line}".rstrip())
        lines.append('        """')
    lines.append("        ...")
    return "\n".join(lines)


def build_interface_text(descriptors: Sequence[ToolDescriptor]) -> str:
    """
    Render the Python interface description of the given tools.

    For each descriptor, in order, an input shape named ``<PascalName>Input``
    and an ``async def name(self, input: <PascalName>Input) -> Any`` stub on
    a single ``Tools`` class. The module ends with ``tools: Tools``, the
    name under which generated code reaches the bindings.

    Names that collide after conversion are numbered in order: tools
    ``get_weather`` and ``get-weather`` render as ``GetWeatherInput`` /
    ``get_weather`` and ``GetWeather2Input`` / ``get_weather_2``.

    Args:
        descriptors: Tool descriptors, in order.

    Returns:
        The interface text, or ``# No tools available`` for an empty list.
    """
    if not descriptors:
        return NO_TOOLS_TEXT

    # Same name twice: the later descriptor wins, as in build_bindings
    by_name = {descriptor.name: descriptor for descriptor in descriptors}
    method_names = unique_identifiers(by_name)

    shapes: list[str] = []
    methods: list[str] = []
    type_names: set[str] = set()
    for name, descriptor in by_name.items():
        base = pascal_case(name)
        type_name, n = f"{base}Input", 2
        while type_name in type_names:
            type_name, n = f"{base}{n}Input", n + 1
        type_names.add(type_name)
        shapes.append(_input_shape(type_name, descriptor.input_schema or {}))
        methods.append(_method_stub(descriptor, type_name, method_names[name]))

    parts = [
        "from typing import Any, Literal, NotRequired, TypedDict",
        "",
        "",
        "\n\n\n".join(shapes),
        "",
        "",
        "class Tools:",
        '    """Available tools. Call them as: await tools.<name>({...})"""',
        "",
        "\n\n".join(methods),
        "",
        "",
        "tools: Tools",
    ]
    return "\n".join(parts)
