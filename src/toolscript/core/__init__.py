"""Core types and the local tool source."""

from toolscript.core.tool import LocalToolset, ToolSpec, tool
from toolscript.core.types import (
    Attempt,
    Dispatch,
    ErrorKind,
    ExecutionRequest,
    ExecutionResult,
    ExecutionStatus,
    GenerationOptions,
    GenerationResult,
    ToolBinding,
    ToolDescriptor,
)

__all__ = [
    "Attempt",
    "Dispatch",
    "ErrorKind",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStatus",
    "GenerationOptions",
    "GenerationResult",
    "LocalToolset",
    "ToolBinding",
    "ToolDescriptor",
    "ToolSpec",
    "tool",
]
