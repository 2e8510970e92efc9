"""
CodeModeEngine - the caller-facing facade.

Ties a tool source, the sandbox executor and the repair loop together:

    engine = CodeModeEngine(toolset, generator=AnthropicGenerator())

    # Run hand-written code against the tools
    result = await engine.execute("return await tools.add({'a': 1, 'b': 2})")

    # Let the model write the code, repairing it on failure
    result = await engine.generate_and_execute("Add 1 and 2")
    print(result.code, result.result)

Tool descriptors are re-read from the source on every call, so tools added
to or removed from the source are picked up without rebuilding the engine.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Iterable, Mapping, Protocol, Union

from toolscript.codemode.api import build_bindings, build_interface_text
from toolscript.codemode.repair import RepairLoop, RetryPolicy
from toolscript.config.settings import ToolscriptSettings, get_settings
from toolscript.core.types import (
    ExecutionResult,
    GenerationOptions,
    GenerationResult,
    ToolBinding,
    ToolDescriptor,
)
from toolscript.exceptions import ConfigurationError
from toolscript.llm.base import CodeGenerator
from toolscript.sandbox.executor import CodeExecutor
from toolscript.sandbox.policy import CapabilityPolicy

logger = logging.getLogger(__name__)


class ToolSource(Protocol):
    """Where tools come from: a local toolset or an MCP-style client.

    ``list_tools`` may be sync or async and may return ToolDescriptor
    objects or mappings with ``name``, ``description`` and ``inputSchema``.
    """

    def list_tools(self) -> Any: ...

    async def call_tool(self, name: str, tool_input: Any) -> Any: ...


def _to_descriptor(item: Union[ToolDescriptor, Mapping[str, Any], Any]) -> ToolDescriptor:
    if isinstance(item, ToolDescriptor):
        return item
    if isinstance(item, Mapping):
        return ToolDescriptor.from_dict(item)
    # Objects with attributes, e.g. MCP SDK Tool models
    return ToolDescriptor(
        name=item.name,
        description=getattr(item, "description", None) or "",
        input_schema=getattr(item, "inputSchema", None) or getattr(item, "input_schema", None) or {},
    )


class CodeModeEngine:
    """
    Runs generated or hand-written Python against a set of tools.

    Usage:
        toolset = LocalToolset([read_file, list_directory])
        engine = CodeModeEngine(toolset, generator=create_generator())
        result = await engine.generate_and_execute("Count the Python files in ./src")
    """

    def __init__(
        self,
        source: ToolSource,
        generator: CodeGenerator | None = None,
        settings: ToolscriptSettings | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            source: Tool source providing ``list_tools`` and ``call_tool``.
            generator: Code generator for generate_and_execute. Optional
                when only ``execute`` is used.
            settings: Defaults for timeouts, capture and retries. The global
                settings if omitted.
            retry_policy: Which failure kinds the repair loop retries.
            policy: Capability policy for the sandbox.
        """
        self.source = source
        self.generator = generator
        self.settings = settings or get_settings()
        self.retry_policy = retry_policy or RetryPolicy()
        self.policy = policy or CapabilityPolicy(
            max_source_length=self.settings.sandbox.max_source_length
        )

    # ------------------------------------------------------------------
    # API surface
    # ------------------------------------------------------------------

    async def descriptors(self) -> list[ToolDescriptor]:
        """Current tool descriptors, in source order."""
        listed = self.source.list_tools()
        if inspect.isawaitable(listed):
            listed = await listed
        # MCP clients wrap the list in a result object
        items: Iterable[Any] = getattr(listed, "tools", listed)
        return [_to_descriptor(item) for item in items]

    async def dispatch(self, name: str, tool_input: Any) -> Any:
        """Forward one tool call to the source."""
        return await self.source.call_tool(name, tool_input)

    async def interface_text(self) -> str:
        """Typed description of the current tools, as shown to the model."""
        return build_interface_text(await self.descriptors())

    async def bindings(self) -> dict[str, ToolBinding]:
        """Runtime binding table for the current tools."""
        return build_bindings(await self.descriptors(), self.dispatch)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        code: str,
        args: Mapping[str, Any] | None = None,
        *,
        timeout_ms: int | None = None,
        capture_output: bool | None = None,
    ) -> ExecutionResult:
        """
        Execute code once against the current tools.

        Args:
            code: Python source; ``tools``, ``args``, ``print`` and
                ``console`` are available to it.
            args: Values exposed as ``args``.
            timeout_ms: Wall-clock budget; the configured default if omitted.
            capture_output: Capture print/console output; the configured
                default if omitted.

        Returns:
            ExecutionResult. Never raises for anything the code does.
        """
        sandbox = self.settings.sandbox
        executor = CodeExecutor(
            await self.bindings(),
            timeout_ms=sandbox.timeout_ms,
            capture_output=sandbox.capture_output,
            policy=self.policy,
        )
        return await executor.execute(
            code, args, timeout_ms=timeout_ms, capture_output=capture_output
        )

    async def generate_and_execute(
        self,
        task_prompt: str,
        args: Mapping[str, Any] | None = None,
        *,
        timeout_ms: int | None = None,
        max_retries: int | None = None,
        system_prompt: str | None = None,
        include_examples: bool | None = None,
        capture_output: bool | None = None,
        llm_options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """
        Have the generator write code for a task and run it, repairing on failure.

        Args:
            task_prompt: Natural-language description of the task.
            args: Values exposed to the generated code as ``args``.
            timeout_ms: Wall-clock budget per execution.
            max_retries: Repair attempts after the first one.
            system_prompt: Overrides the default code-writing system prompt.
            include_examples: Include worked examples in the first prompt.
            capture_output: Capture print/console output.
            llm_options: Options forwarded to every generation call.

        Returns:
            GenerationResult with the successful code attached.

        Raises:
            ConfigurationError: The engine has no generator.
            RepairExhaustedError: No attempt succeeded within the budget.
        """
        if self.generator is None:
            raise ConfigurationError(
                "generate_and_execute requires a code generator. "
                "Pass generator=... or use toolscript.llm.create_generator()."
            )

        sandbox = self.settings.sandbox
        generation = self.settings.generation
        descriptors = await self.descriptors()

        loop = RepairLoop(self.generator, retry_policy=self.retry_policy, policy=self.policy)
        return await loop.run(
            task_prompt,
            build_interface_text(descriptors),
            build_bindings(descriptors, self.dispatch),
            generation.max_retries if max_retries is None else max_retries,
            args=args,
            timeout_ms=sandbox.timeout_ms if timeout_ms is None else timeout_ms,
            capture_output=sandbox.capture_output if capture_output is None else capture_output,
            system_prompt=system_prompt,
            include_examples=(
                generation.include_examples if include_examples is None else include_examples
            ),
            llm_options=llm_options,
        )
