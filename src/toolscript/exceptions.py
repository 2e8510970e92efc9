"""
Exception hierarchy for toolscript.

All exceptions inherit from ToolscriptError for easy catching.

Only RepairExhaustedError is raised out of the generate-and-execute path;
everything that goes wrong inside a sandboxed execution is reported as a
field of the ExecutionResult instead.
"""

from __future__ import annotations

from typing import Any


class ToolscriptError(Exception):
    """Base exception for all toolscript errors."""

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# Configuration Errors
class ConfigurationError(ToolscriptError):
    """Error in configuration."""

    pass


# Sandbox Errors
class SandboxError(ToolscriptError):
    """Base exception for sandbox-related errors."""

    pass


class SandboxViolationError(SandboxError):
    """Submitted code uses a construct the capability policy rejects."""

    def __init__(self, message: str, *, violations: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.violations = violations or []

    def __str__(self) -> str:
        if self.violations:
            return f"{self.message}: {'; '.join(self.violations)}"
        return self.message


# Tool Errors
class ToolError(ToolscriptError):
    """Base exception for tool-related errors."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        tool_input: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.tool_name = tool_name
        self.tool_input = tool_input


class ToolNotFoundError(ToolError):
    """Tool not found in the tool source."""

    pass


class ToolInvocationError(ToolError):
    """A tool dispatch rejected or returned an error-flagged result."""

    def __str__(self) -> str:
        # Surfaces inside generated code, keep it to the tool's own message.
        return self.message


# LLM Errors
class LLMError(ToolscriptError):
    """Base exception for generating-backend errors."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.provider = provider
        self.model = model


class AuthenticationError(LLMError):
    """Authentication failed (invalid API key, etc.)."""

    pass


class RateLimitError(LLMError):
    """Rate limit exceeded."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


# Repair loop
class RepairExhaustedError(ToolscriptError):
    """The repair loop used its whole retry budget without a successful run."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        last_error: str | None = None,
        last_code: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.last_error = last_error
        self.last_code = last_code
