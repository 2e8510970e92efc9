"""
Sandboxed executor for generated code.

Runs one piece of Python source against one binding table, exactly once per
``execute`` call, and always returns a fully populated ExecutionResult:

- The source is validated and wrapped by the CapabilityPolicy, so a bare
  top-level ``return`` produces the result and top-level ``await`` works.
- The wrapped coroutine runs on a fresh event loop in a dedicated daemon
  thread. Tool calls are forwarded to the caller's event loop, where the
  dispatcher lives.
- Output from ``print`` and ``console.*`` is captured per execution.
- The wall-clock budget is enforced twice: a trace hook in the sandbox
  thread interrupts Python-level code (including tight loops) once the
  deadline passes, and the caller stops waiting at the deadline regardless.
  A long C-level call that never returns to Python is therefore only
  abandoned, not stopped; its thread keeps running in the background.
- Errors are reported as text built from the exception's own message plus
  the frames of the submitted code. Frames from the host never appear.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys
import threading
import time
import traceback
import types
from typing import Any, Iterator, Mapping

from toolscript.core.naming import unique_identifiers
from toolscript.core.types import (
    ErrorKind,
    ExecutionRequest,
    ExecutionResult,
    ExecutionStatus,
    ToolBinding,
)
from toolscript.exceptions import SandboxViolationError
from toolscript.sandbox.capture import OutputCapture
from toolscript.sandbox.policy import ENTRYPOINT_NAME, SANDBOX_FILENAME, CapabilityPolicy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000

_TIMEOUT_PATTERN = re.compile(r"execution timed out", re.IGNORECASE)


def timeout_message(timeout_ms: int) -> str:
    return f"Execution timed out after {timeout_ms}ms"


class ExecutionInterrupted(BaseException):
    """Raised inside the sandbox thread once the deadline has passed.

    Derives from BaseException so ``except Exception`` in generated code
    does not catch it.
    """

    def __init__(self) -> None:
        super().__init__("Script execution timed out")


class ToolNamespace:
    """The ``tools`` object seen by generated code.

    Supports ``tools.name(...)``, ``tools["name"](...)``, ``"name" in tools``
    and iteration over tool names. Names that are not identifiers are also
    reachable through their identifier alias, numbered on collision
    (``get_weather_2``) the same way the interface text names them.
    """

    def __init__(self, bindings: Mapping[str, ToolBinding]) -> None:
        self._bindings = dict(bindings)
        self._aliases = {
            ident: name
            for name, ident in unique_identifiers(self._bindings).items()
            if ident != name
        }

    def __getattr__(self, name: str) -> ToolBinding:
        if name.startswith("__"):
            raise AttributeError(name)
        real = self._aliases.get(name, name)
        try:
            return self._bindings[real]
        except KeyError:
            raise AttributeError(f"No tool named '{name}'") from None

    def __getitem__(self, name: str) -> ToolBinding:
        try:
            return self._bindings[self._aliases.get(name, name)]
        except KeyError:
            raise KeyError(f"No tool named '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._bindings or name in self._aliases

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __dir__(self) -> list[str]:
        return sorted(set(self._bindings) | set(self._aliases))

    def __repr__(self) -> str:
        return f"<tools: {', '.join(self._bindings) or 'none'}>"


class _SandboxRun:
    """One execution in its own thread and event loop."""

    def __init__(
        self,
        entrypoint: Any,
        deadline: float,
        host_loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._entrypoint = entrypoint
        self._deadline = deadline
        self._host_loop = host_loop
        self._stop = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[Any] | None = None
        self.tool_failures: list[BaseException] = []
        self.done: asyncio.Future[tuple[Any, BaseException | None]] = host_loop.create_future()

    # -- tool forwarding ------------------------------------------------

    def bridge(self, binding: ToolBinding) -> ToolBinding:
        """Wrap a binding so it runs on the host loop."""
        host_loop = self._host_loop
        failures = self.tool_failures

        async def invoke(tool_input: Any) -> Any:
            return await binding(tool_input)

        async def call(tool_input: Any = None, /, **kwargs: Any) -> Any:
            if kwargs:
                tool_input = {**(tool_input or {}), **kwargs}
            future = asyncio.run_coroutine_threadsafe(invoke(tool_input), host_loop)
            try:
                return await asyncio.wrap_future(future)
            except Exception as exc:
                failures.append(exc)
                raise

        call.__name__ = getattr(binding, "__name__", "tool")
        return call

    def is_tool_failure(self, exc: BaseException) -> bool:
        return any(exc is failure for failure in self.tool_failures)

    # -- deadline enforcement ---------------------------------------------

    def _check_deadline(self) -> None:
        if self._stop.is_set() or time.monotonic() >= self._deadline:
            raise ExecutionInterrupted()

    def _trace_call(self, frame: types.FrameType, event: str, arg: Any) -> Any:
        # Only frames of submitted code are traced
        if frame.f_code.co_filename != SANDBOX_FILENAME:
            return None
        self._check_deadline()
        return self._trace_line

    def _trace_line(self, frame: types.FrameType, event: str, arg: Any) -> Any:
        self._check_deadline()
        return self._trace_line

    # -- thread body ------------------------------------------------------

    def start(self) -> None:
        thread = threading.Thread(target=self._run, name="toolscript-sandbox", daemon=True)
        thread.start()

    def _run(self) -> None:
        value: Any = None
        error: BaseException | None = None
        sys.settrace(self._trace_call)
        try:
            value = asyncio.run(self._main())
        except BaseException as exc:  # reported to the host, never raised in this thread
            error = exc
        finally:
            sys.settrace(None)

        try:
            self._host_loop.call_soon_threadsafe(self._resolve, value, error)
        except RuntimeError:
            logger.debug("Host loop closed before the sandbox finished; result dropped")

    async def _main(self) -> Any:
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.current_task()
        if self._stop.is_set():
            raise ExecutionInterrupted()
        return await self._entrypoint()

    def _resolve(self, value: Any, error: BaseException | None) -> None:
        if not self.done.done():
            self.done.set_result((value, error))

    def cancel(self) -> None:
        """Stop the run: interrupts running code and cancels pending awaits."""
        self._stop.set()
        loop, task = self._loop, self._task
        if loop is None or task is None:
            return
        try:
            loop.call_soon_threadsafe(task.cancel)
        except RuntimeError:
            # The sandbox loop already closed, so the run is over
            logger.debug("Sandbox loop already closed at cancellation")


def _source_line(lines: list[str], lineno: int | None) -> str:
    if lineno is None or not 0 < lineno <= len(lines):
        return ""
    return lines[lineno - 1].strip()


def format_syntax_error(exc: SyntaxError) -> str:
    """``SyntaxError: invalid syntax (line 2)`` plus the offending line."""
    message = f"SyntaxError: {exc.msg}"
    if exc.lineno is not None:
        message += f" (line {exc.lineno})"
    if exc.text and exc.text.strip():
        message += f"\n    {exc.text.strip()}"
    return message


def format_error(exc: BaseException, source: str, timeout_ms: int) -> str:
    """
    Render an exception raised by submitted code.

    The message comes from the exception itself. A timeout-shaped message is
    normalized to the standard timeout wording. Only traceback frames that
    belong to the submitted code are kept.
    """
    message = str(exc)
    if _TIMEOUT_PATTERN.search(message):
        return timeout_message(timeout_ms)

    header = f"{type(exc).__name__}: {message}" if message else type(exc).__name__
    lines = source.splitlines()

    frames = [
        frame
        for frame in traceback.extract_tb(exc.__traceback__)
        if frame.filename == SANDBOX_FILENAME
    ]
    if not frames:
        return header

    rendered = [header, "Traceback (most recent call last):"]
    for frame in frames:
        name = "<module>" if frame.name == ENTRYPOINT_NAME else frame.name
        rendered.append(f'  File "{SANDBOX_FILENAME}", line {frame.lineno}, in {name}')
        text = _source_line(lines, frame.lineno)
        if text:
            rendered.append(f"    {text}")
    return "\n".join(rendered)


class CodeExecutor:
    """
    Executes generated Python code in a restricted namespace with tools.

    The binding table is exposed to the code as ``tools``; call arguments as
    ``args``; output goes through ``print`` and ``console``. Nothing is
    shared between executions, so one executor can serve concurrent calls.

    Usage:
        executor = CodeExecutor(bindings)
        result = await executor.execute("return await tools.echo({'x': 1})")
        assert result.success
        print(result.result, result.output)
    """

    def __init__(
        self,
        bindings: Mapping[str, ToolBinding] | None = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        capture_output: bool = True,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            bindings: Tool name to async callable. Read-only from the
                sandbox's point of view.
            timeout_ms: Default wall-clock budget per execution.
            capture_output: Default for capturing print/console output.
            policy: Capability policy; the default allow-list if omitted.
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.bindings: dict[str, ToolBinding] = dict(bindings or {})
        self.timeout_ms = timeout_ms
        self.capture_output = capture_output
        self.policy = policy or CapabilityPolicy()

    async def execute(
        self,
        code: str,
        args: Mapping[str, Any] | None = None,
        *,
        timeout_ms: int | None = None,
        capture_output: bool | None = None,
    ) -> ExecutionResult:
        """
        Execute code once and report the outcome.

        Args:
            code: Python source. May use top-level ``await`` and ``return``.
            args: Values exposed to the code as ``args``.
            timeout_ms: Overrides the executor's default budget.
            capture_output: Overrides the executor's default capture setting.

        Returns:
            ExecutionResult. This method does not raise for anything the
            submitted code does.
        """
        request = ExecutionRequest(
            code=code,
            args=dict(args or {}),
            timeout_ms=timeout_ms if timeout_ms is not None else self.timeout_ms,
            capture_output=self.capture_output if capture_output is None else capture_output,
        )
        return await self.run(request)

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        """Execute an ExecutionRequest. See ``execute``."""
        start = time.perf_counter()
        capture = OutputCapture(enabled=request.capture_output)

        def finish(
            status: ExecutionStatus,
            *,
            result: Any = None,
            error: str | None = None,
            kind: ErrorKind | None = None,
        ) -> ExecutionResult:
            return ExecutionResult(
                success=status is ExecutionStatus.COMPLETED,
                output=capture.snapshot(),
                result=result,
                error=error,
                duration_ms=int(round((time.perf_counter() - start) * 1000)),
                status=status,
                error_kind=kind,
            )

        # Prepared
        try:
            program = self.policy.compile(request.code)
        except SyntaxError as e:
            return finish(ExecutionStatus.FAILED, error=format_syntax_error(e), kind=ErrorKind.SYNTAX)
        except SandboxViolationError as e:
            return finish(
                ExecutionStatus.FAILED,
                error=f"SandboxViolationError: {e}",
                kind=ErrorKind.SYNTAX,
            )

        host_loop = asyncio.get_running_loop()
        deadline = time.monotonic() + request.timeout_ms / 1000

        namespace: dict[str, Any] = {}
        sandbox_run = _SandboxRun(
            entrypoint=lambda: namespace[ENTRYPOINT_NAME](),
            deadline=deadline,
            host_loop=host_loop,
        )
        tools = ToolNamespace(
            {name: sandbox_run.bridge(binding) for name, binding in self.bindings.items()}
        )
        namespace.update(
            self.policy.build_namespace(
                {
                    "tools": tools,
                    "args": request.args,
                    "console": capture.console,
                    "print": capture.print,
                }
            )
        )
        # Defines the entrypoint only; no submitted code runs here
        exec(program, namespace)  # noqa: S102

        # Running
        logger.debug("Sandbox execution started (timeout=%dms)", request.timeout_ms)
        sandbox_run.start()
        try:
            value, error = await asyncio.wait_for(
                asyncio.shield(sandbox_run.done),
                timeout=request.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            sandbox_run.cancel()
            logger.warning("Sandbox execution timed out after %dms", request.timeout_ms)
            return finish(
                ExecutionStatus.TIMED_OUT,
                error=timeout_message(request.timeout_ms),
                kind=ErrorKind.TIMEOUT,
            )
        except asyncio.CancelledError:
            sandbox_run.cancel()
            raise

        if error is None:
            logger.debug("Sandbox execution completed")
            return finish(ExecutionStatus.COMPLETED, result=value)

        if isinstance(error, (ExecutionInterrupted, asyncio.CancelledError)):
            logger.warning("Sandbox execution interrupted after %dms", request.timeout_ms)
            return finish(
                ExecutionStatus.TIMED_OUT,
                error=timeout_message(request.timeout_ms),
                kind=ErrorKind.TIMEOUT,
            )

        kind = ErrorKind.TOOL_INVOCATION if sandbox_run.is_tool_failure(error) else ErrorKind.RUNTIME
        logger.debug("Sandbox execution failed: %s", type(error).__name__)
        return finish(
            ExecutionStatus.FAILED,
            error=format_error(error, request.code, request.timeout_ms),
            kind=kind,
        )
