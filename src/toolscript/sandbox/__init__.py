"""Sandboxed execution of generated code."""

from toolscript.sandbox.capture import Console, OutputCapture, render_value
from toolscript.sandbox.executor import (
    DEFAULT_TIMEOUT_MS,
    CodeExecutor,
    ExecutionInterrupted,
    ToolNamespace,
    timeout_message,
)
from toolscript.sandbox.policy import CapabilityPolicy

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "CapabilityPolicy",
    "CodeExecutor",
    "Console",
    "ExecutionInterrupted",
    "OutputCapture",
    "ToolNamespace",
    "render_value",
    "timeout_message",
]
