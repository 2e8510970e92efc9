"""Tests for the sandbox executor."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from toolscript.codemode.api import build_bindings
from toolscript.core.types import ErrorKind, ExecutionRequest, ExecutionStatus, ToolDescriptor
from toolscript.exceptions import ToolInvocationError
from toolscript.sandbox.executor import CodeExecutor, format_error, timeout_message


def _echo_bindings(dispatch):
    return build_bindings([ToolDescriptor(name="echo"), ToolDescriptor(name="get-weather")], dispatch)


class TestExecuteBasics:
    """Results, return values and arguments."""

    @pytest.mark.asyncio
    async def test_return_value(self):
        result = await CodeExecutor().execute("return 1+1")

        assert result.success is True
        assert result.result == 2
        assert result.error is None
        assert result.status is ExecutionStatus.COMPLETED
        assert result.error_kind is None
        assert result.status.is_terminal
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_no_return_gives_none(self):
        result = await CodeExecutor().execute("x = 5")

        assert result.success is True
        assert result.result is None

    @pytest.mark.asyncio
    async def test_args_are_visible(self):
        result = await CodeExecutor().execute("return args['n'] * 2", {"n": 21})

        assert result.result == 42

    @pytest.mark.asyncio
    async def test_top_level_await(self):
        code = "await asyncio.sleep(0)\nvalues = await asyncio.gather(asyncio.sleep(0, 'a'), asyncio.sleep(0, 'b'))\nreturn values"
        result = await CodeExecutor().execute(code)

        assert result.success is True
        assert result.result == ["a", "b"]

    @pytest.mark.asyncio
    async def test_allowed_imports(self):
        code = "import math\nfrom collections import Counter\nreturn math.sqrt(16), Counter('aab')['a']"
        result = await CodeExecutor().execute(code)

        assert result.success is True
        assert result.result == (4.0, 2)

    @pytest.mark.asyncio
    async def test_functions_and_classes(self):
        code = (
            "class Box:\n"
            "    def __init__(self, value):\n"
            "        self.value = value\n"
            "\n"
            "async def double(box):\n"
            "    return box.value * 2\n"
            "\n"
            "return await double(Box(4))\n"
        )
        result = await CodeExecutor().execute(code)

        assert result.success is True
        assert result.result == 8

    @pytest.mark.asyncio
    async def test_run_request(self):
        result = await CodeExecutor().run(ExecutionRequest(code="return args", args={"k": "v"}))

        assert result.result == {"k": "v"}

    def test_only_finished_states_are_terminal(self):
        assert not ExecutionStatus.PREPARED.is_terminal
        assert not ExecutionStatus.RUNNING.is_terminal
        assert ExecutionStatus.FAILED.is_terminal

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            CodeExecutor(timeout_ms=0)
        with pytest.raises(ValueError):
            ExecutionRequest(code="return 1", timeout_ms=-5)


class TestOutputCapture:
    """print() and console.* capture."""

    @pytest.mark.asyncio
    async def test_order_preserved(self):
        result = await CodeExecutor().execute("console.log('a')\nconsole.log('b')")

        assert result.output == ["a", "b"]

    @pytest.mark.asyncio
    async def test_print_is_captured(self):
        result = await CodeExecutor().execute("print('x', 1, True)\nprint('y', sep='-')")

        assert result.output == ["x 1 True", "y"]

    @pytest.mark.asyncio
    async def test_severity_prefixes(self):
        code = (
            "console.log('plain')\n"
            "console.info('i')\n"
            "console.debug('d')\n"
            "console.warn('w')\n"
            "console.error('e')\n"
        )
        result = await CodeExecutor().execute(code)

        assert result.output == ["plain", "[INFO] i", "[DEBUG] d", "[WARN] w", "[ERROR] e"]

    @pytest.mark.asyncio
    async def test_structured_values_as_json(self):
        result = await CodeExecutor().execute("print({'a': [1, 2]})")

        assert result.output == ['{\n  "a": [\n    1,\n    2\n  ]\n}']

    @pytest.mark.asyncio
    async def test_partial_output_on_failure(self):
        result = await CodeExecutor().execute("print('before')\nraise ValueError('after')")

        assert result.success is False
        assert result.output == ["before"]

    @pytest.mark.asyncio
    async def test_capture_disabled(self):
        result = await CodeExecutor().execute("print('hidden')\nreturn 1", capture_output=False)

        assert result.success is True
        assert result.output == []

    @pytest.mark.asyncio
    async def test_concurrent_executions_are_isolated(self):
        executor = CodeExecutor()
        first, second = await asyncio.gather(
            executor.execute("print('one')\nawait asyncio.sleep(0.01)\nprint('one again')"),
            executor.execute("print('two')"),
        )

        assert first.output == ["one", "one again"]
        assert second.output == ["two"]


class TestErrors:
    """Error classification and sanitization."""

    @pytest.mark.asyncio
    async def test_runtime_error_message(self):
        result = await CodeExecutor().execute("raise Exception('boom')")

        assert result.success is False
        assert result.status is ExecutionStatus.FAILED
        assert result.error_kind is ErrorKind.RUNTIME
        assert "boom" in result.error

    @pytest.mark.asyncio
    async def test_error_has_no_host_frames(self):
        """Only frames of the submitted code appear in the error text."""
        result = await CodeExecutor().execute("def inner():\n    raise ValueError('boom')\n\ninner()")

        assert "boom" in result.error
        assert '"<sandbox>", line 2, in inner' in result.error
        assert '"<sandbox>", line 4, in <module>' in result.error
        assert ".py" not in result.error
        assert "toolscript" not in result.error
        assert "asyncio" not in result.error

    @pytest.mark.asyncio
    async def test_syntax_error(self):
        result = await CodeExecutor().execute("return (")

        assert result.success is False
        assert result.error_kind is ErrorKind.SYNTAX
        assert result.error.startswith("SyntaxError")
        assert result.output == []

    @pytest.mark.asyncio
    async def test_policy_violation_is_syntax_kind(self):
        result = await CodeExecutor().execute("return ().__class__.__subclasses__()")

        assert result.success is False
        assert result.error_kind is ErrorKind.SYNTAX
        assert "SandboxViolationError" in result.error

    def test_format_error_normalizes_timeout_text(self):
        error = RuntimeError("Script execution timed out somewhere")
        assert format_error(error, "", 250) == timeout_message(250)


class TestDenialByOmission:
    """Disallowed capabilities evaluate to None instead of raising."""

    @pytest.mark.asyncio
    async def test_os_is_none(self):
        result = await CodeExecutor().execute("return os is None")

        assert result.success is True
        assert result.result is True

    @pytest.mark.asyncio
    async def test_presence_check(self):
        code = "if open is None and getattr is None and sys is None:\n    return 'not available'\nreturn 'available'"
        result = await CodeExecutor().execute(code)

        assert result.result == "not available"

    @pytest.mark.asyncio
    async def test_using_denied_capability_is_ordinary_error(self):
        result = await CodeExecutor().execute("return open('/etc/passwd').read()")

        assert result.success is False
        assert result.error_kind is ErrorKind.RUNTIME
        assert "TypeError" in result.error

    @pytest.mark.asyncio
    async def test_import_of_denied_module_fails(self):
        result = await CodeExecutor().execute("import os\nreturn os.getcwd()")

        assert result.success is False
        assert "ImportError" in result.error

    @pytest.mark.asyncio
    async def test_runtime_format_string_cannot_reach_environment(self, monkeypatch):
        """Attribute traversal in a format string built at runtime never runs."""
        monkeypatch.setenv("TOOLSCRIPT_TEST_SECRET", "hunter2")
        dunder = "chr(95) * 2"
        code = (
            f"spec = '{{0.' + {dunder} + 'func' + {dunder} + '.' + {dunder} + 'globals' + {dunder}\n"
            "spec = spec + '[_os].environ[TOOLSCRIPT_TEST_SECRET]}'\n"
            "return spec.format(random.seed)\n"
        )
        result = await CodeExecutor().execute(code)

        assert result.success is False
        assert result.error_kind is ErrorKind.SYNTAX
        assert result.result is None
        assert "hunter2" not in (result.error or "")

    @pytest.mark.asyncio
    async def test_literal_format_strings_still_work(self):
        result = await CodeExecutor().execute("return '{0}-{1:03d}'.format('a', 7)")

        assert result.success is True
        assert result.result == "a-007"


class TestTimeout:
    """Wall-clock budget enforcement."""

    @pytest.mark.asyncio
    async def test_tight_loop_is_interrupted(self):
        start = time.monotonic()
        result = await CodeExecutor().execute("while True:\n    pass", timeout_ms=100)
        elapsed = time.monotonic() - start

        assert result.success is False
        assert result.status is ExecutionStatus.TIMED_OUT
        assert result.error_kind is ErrorKind.TIMEOUT
        assert result.status.is_terminal
        assert result.timed_out is True
        assert "timed out" in result.error
        assert result.error == "Execution timed out after 100ms"
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_except_exception_does_not_swallow_timeout(self):
        code = (
            "while True:\n"
            "    try:\n"
            "        x = 1\n"
            "    except Exception:\n"
            "        pass\n"
        )
        result = await CodeExecutor().execute(code, timeout_ms=100)

        assert result.status is ExecutionStatus.TIMED_OUT

    @pytest.mark.asyncio
    async def test_pending_await_is_abandoned(self):
        start = time.monotonic()
        result = await CodeExecutor().execute("await asyncio.sleep(10)", timeout_ms=100)

        assert result.status is ExecutionStatus.TIMED_OUT
        assert time.monotonic() - start < 2.0

    @pytest.mark.asyncio
    async def test_output_before_timeout_is_kept(self):
        result = await CodeExecutor().execute("print('started')\nwhile True:\n    pass", timeout_ms=100)

        assert result.output == ["started"]
        assert result.duration_ms >= 90


class TestToolCalls:
    """Tool bindings inside the sandbox."""

    @pytest.mark.asyncio
    async def test_single_dispatch(self):
        dispatch = AsyncMock(return_value={"x": 1})
        executor = CodeExecutor(_echo_bindings(dispatch))

        result = await executor.execute("return await tools.echo({'x': 1})")

        dispatch.assert_awaited_once_with("echo", {"x": 1})
        assert result.success is True
        assert result.result == {"x": 1}

    @pytest.mark.asyncio
    async def test_name_aliases_and_membership(self, recording_dispatch):
        executor = CodeExecutor(_echo_bindings(recording_dispatch))
        code = (
            "a = await tools.get_weather({'city': 'Oslo'})\n"
            "b = await tools['get-weather']({'city': 'Rome'})\n"
            "return a, b, 'echo' in tools, sorted(tools)\n"
        )
        result = await executor.execute(code)

        assert result.success is True
        assert result.result == (
            {"city": "Oslo"},
            {"city": "Rome"},
            True,
            ["echo", "get-weather"],
        )
        assert recording_dispatch.calls == [
            ("get-weather", {"city": "Oslo"}),
            ("get-weather", {"city": "Rome"}),
        ]

    @pytest.mark.asyncio
    async def test_keyword_arguments_become_input(self, recording_dispatch):
        executor = CodeExecutor(_echo_bindings(recording_dispatch))

        result = await executor.execute("return await tools.echo(x=1, y=2)")

        assert result.result == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_tool_failure_kind(self):
        dispatch = AsyncMock(side_effect=ToolInvocationError("quota exceeded", tool_name="echo"))
        executor = CodeExecutor(_echo_bindings(dispatch))

        result = await executor.execute("return await tools.echo({})")

        assert result.success is False
        assert result.error_kind is ErrorKind.TOOL_INVOCATION
        assert "quota exceeded" in result.error
        assert ".py" not in result.error

    @pytest.mark.asyncio
    async def test_tool_failure_can_be_caught(self):
        dispatch = AsyncMock(side_effect=ToolInvocationError("quota exceeded"))
        executor = CodeExecutor(_echo_bindings(dispatch))
        code = (
            "try:\n"
            "    await tools.echo({})\n"
            "except Exception as error:\n"
            "    return 'handled: ' + str(error)\n"
        )

        result = await executor.execute(code)

        assert result.success is True
        assert result.result == "handled: quota exceeded"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_runtime_error(self, recording_dispatch):
        executor = CodeExecutor(_echo_bindings(recording_dispatch))

        result = await executor.execute("return await tools.missing({})")

        assert result.success is False
        assert result.error_kind is ErrorKind.RUNTIME
        assert "No tool named 'missing'" in result.error
        assert recording_dispatch.calls == []

    @pytest.mark.asyncio
    async def test_colliding_aliases_are_numbered(self, recording_dispatch):
        bindings = build_bindings(
            [ToolDescriptor(name="get-weather"), ToolDescriptor(name="get_weather")],
            recording_dispatch,
        )
        code = (
            "await tools.get_weather({'n': 1})\n"
            "await tools.get_weather_2({'n': 2})\n"
            "return 'get_weather_2' in tools\n"
        )

        result = await CodeExecutor(bindings).execute(code)

        assert result.result is True
        assert recording_dispatch.calls == [
            ("get_weather", {"n": 1}),
            ("get-weather", {"n": 2}),
        ]
