"""
Core type definitions for toolscript.

This module defines the data model shared by the API surface generator,
the sandbox executor and the repair loop:
- Tool descriptors and bindings
- Execution requests and results
- Repair loop attempts
- Generation options for the code-writing backend
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Mapping


# =============================================================================
# Enums
# =============================================================================


class ExecutionStatus(Enum):
    """Lifecycle of one sandboxed execution.

    PREPARED -> RUNNING -> {COMPLETED | FAILED | TIMED_OUT}. Only the three
    terminal states are ever visible on an ExecutionResult.
    """

    PREPARED = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()
    TIMED_OUT = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.TIMED_OUT)


class ErrorKind(Enum):
    """Failure taxonomy for executions."""

    SYNTAX = "syntax"  # Rejected before running (parse error or policy violation)
    RUNTIME = "runtime"  # Raised while running
    TOOL_INVOCATION = "tool_invocation"  # Raised by a tool dispatch
    TIMEOUT = "timeout"  # Exceeded the wall-clock budget


# =============================================================================
# Tool Types
# =============================================================================


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and JSON-schema input contract of one tool."""

    name: str
    description: str = ""
    input_schema: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolDescriptor:
        """Build from an MCP-style mapping (``inputSchema`` or ``input_schema``)."""
        schema = data.get("inputSchema", data.get("input_schema")) or {}
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=schema,
        )


ToolBinding = Callable[[Any], Awaitable[Any]]
"""Async callable exposed to sandboxed code; forwards one call to dispatch."""

Dispatch = Callable[[str, Any], Awaitable[Any]]
"""Dispatcher signature: ``await dispatch(tool_name, tool_input)``."""


# =============================================================================
# Execution Types
# =============================================================================


@dataclass
class ExecutionRequest:
    """One submission to the sandbox executor."""

    code: str
    args: dict[str, Any] = field(default_factory=dict)
    timeout_ms: int = 30_000
    capture_output: bool = True

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")


@dataclass
class ExecutionResult:
    """Outcome of one sandboxed execution.

    ``result`` is meaningful only when ``success`` is True, ``error`` only
    when it is False.
    """

    success: bool
    output: list[str] = field(default_factory=list)
    result: Any = None
    error: str | None = None
    duration_ms: int = 0
    status: ExecutionStatus = ExecutionStatus.COMPLETED
    error_kind: ErrorKind | None = None

    @property
    def timed_out(self) -> bool:
        return self.status is ExecutionStatus.TIMED_OUT


@dataclass
class Attempt:
    """One iteration of the repair loop."""

    code: str
    result: ExecutionResult


@dataclass
class GenerationResult(ExecutionResult):
    """Successful result of generate-and-execute, with the code that produced it."""

    code: str = ""
    attempts: list[Attempt] = field(default_factory=list)

    @classmethod
    def from_attempt(cls, attempt: Attempt, history: list[Attempt]) -> GenerationResult:
        res = attempt.result
        return cls(
            success=res.success,
            output=res.output,
            result=res.result,
            error=res.error,
            duration_ms=res.duration_ms,
            status=res.status,
            error_kind=res.error_kind,
            code=attempt.code,
            attempts=list(history),
        )


# =============================================================================
# Generation
# =============================================================================


@dataclass
class GenerationOptions:
    """Options forwarded to the code-writing backend."""

    model: str | None = None
    temperature: float | None = None
    max_tokens: int = 4096
    # Backend-specific settings
    extra_params: dict[str, Any] = field(default_factory=dict)
