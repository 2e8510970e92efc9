"""
toolscript - let a language model call tools by writing code.

Instead of one tool call per model turn, the model writes a short Python
program against a typed description of the tools. The program runs in a
restricted sandbox, and failures are fed back to the model for repair.

Quick Start:
    import toolscript
    from toolscript import CodeModeEngine, LocalToolset, tool

    toolscript.configure(anthropic_api_key="sk-ant-...")

    @tool
    def list_directory(path: str) -> list[dict]:
        '''List the entries of a directory.'''
        ...

    engine = CodeModeEngine(
        LocalToolset([list_directory]),
        generator=toolscript.create_generator(),
    )

    # Hand-written code
    result = await engine.execute("return await tools.list_directory({'path': '.'})")

    # Model-written code with automatic repair
    result = await engine.generate_and_execute("How many Python files are in ./src?")
    print(result.code)    # The code that succeeded
    print(result.result)  # Its return value
    print(result.output)  # Captured print/console output

Installation:
    pip install toolscript
    pip install toolscript[anthropic]  # For Claude
    pip install toolscript[openai]     # For GPT
"""

from toolscript.codemode import (
    RepairLoop,
    RetryPolicy,
    build_bindings,
    build_interface_text,
    extract_code,
)
from toolscript.config.settings import (
    GenerationSettings,
    SandboxSettings,
    ToolscriptSettings,
    configure,
    get_settings,
)
from toolscript.core.tool import LocalToolset, ToolSpec, tool
from toolscript.core.types import (
    Attempt,
    ErrorKind,
    ExecutionRequest,
    ExecutionResult,
    ExecutionStatus,
    GenerationOptions,
    GenerationResult,
    ToolDescriptor,
)
from toolscript.engine import CodeModeEngine
from toolscript.exceptions import (
    AuthenticationError,
    ConfigurationError,
    LLMError,
    RateLimitError,
    RepairExhaustedError,
    SandboxError,
    SandboxViolationError,
    ToolError,
    ToolInvocationError,
    ToolNotFoundError,
    ToolscriptError,
)
from toolscript.llm import CodeGenerator, create_generator
from toolscript.sandbox import CapabilityPolicy, CodeExecutor

__version__ = "0.1.0"
__all__ = [
    # Configuration
    "configure",
    "get_settings",
    "ToolscriptSettings",
    "SandboxSettings",
    "GenerationSettings",
    # Engine
    "CodeModeEngine",
    "CodeExecutor",
    "CapabilityPolicy",
    "RepairLoop",
    "RetryPolicy",
    # API surface
    "build_bindings",
    "build_interface_text",
    "extract_code",
    # Tools
    "tool",
    "LocalToolset",
    "ToolSpec",
    # Generators
    "CodeGenerator",
    "create_generator",
    # Types
    "Attempt",
    "ErrorKind",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStatus",
    "GenerationOptions",
    "GenerationResult",
    "ToolDescriptor",
    # Exceptions
    "ToolscriptError",
    "ConfigurationError",
    "SandboxError",
    "SandboxViolationError",
    "ToolError",
    "ToolNotFoundError",
    "ToolInvocationError",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "RepairExhaustedError",
]
