"""
Generation-execution-repair loop.

Drives a code generator and the sandbox executor until one execution
succeeds or the retry budget runs out:

1. Ask the generator for code written against the interface text.
2. Execute the extracted code with the given bindings.
3. On success, return the result together with the code that produced it.
4. On failure, send the failing code and its exact error back to the
   generator for a corrected version, and execute again.

With the default RetryPolicy every failure kind is retried the same way,
so a failing run makes exactly ``1 + max_retries`` generation calls and a
succeeding one stops at the first success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from toolscript.codemode.prompts import (
    CODE_MODE_SYSTEM_PROMPT,
    build_generation_prompt,
    build_repair_prompt,
    extract_code,
)
from toolscript.core.types import (
    Attempt,
    ErrorKind,
    ExecutionResult,
    GenerationOptions,
    GenerationResult,
    ToolBinding,
)
from toolscript.exceptions import RepairExhaustedError
from toolscript.llm.base import CodeGenerator
from toolscript.sandbox.executor import DEFAULT_TIMEOUT_MS, CodeExecutor
from toolscript.sandbox.policy import CapabilityPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2


@dataclass(frozen=True)
class RetryPolicy:
    """Which failure kinds the repair loop may ask the generator to fix.

    The default retries every kind. A narrower set stops the loop as soon
    as a failure of another kind occurs.
    """

    retry_on: frozenset[ErrorKind] = field(default_factory=lambda: frozenset(ErrorKind))

    def should_retry(self, result: ExecutionResult) -> bool:
        return result.error_kind is None or result.error_kind in self.retry_on


class RepairLoop:
    """
    Bounded generate, execute and repair cycle.

    Usage:
        loop = RepairLoop(generator)
        result = await loop.run("Sum the sizes of all files", interface_text, bindings)
        print(result.code, result.result)
    """

    def __init__(
        self,
        generator: CodeGenerator,
        *,
        retry_policy: RetryPolicy | None = None,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        self.generator = generator
        self.retry_policy = retry_policy or RetryPolicy()
        self.policy = policy

    async def run(
        self,
        task_prompt: str,
        interface_text: str,
        bindings: Mapping[str, ToolBinding],
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        args: Mapping[str, Any] | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        capture_output: bool = True,
        system_prompt: str | None = None,
        include_examples: bool = True,
        llm_options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """
        Generate code for a task and execute it, repairing on failure.

        Args:
            task_prompt: Natural-language description of the task.
            interface_text: Typed description of the available tools.
            bindings: Tool name to async callable, exposed as ``tools``.
            max_retries: Number of repair attempts after the first one.
            args: Values exposed to the generated code as ``args``.
            timeout_ms: Wall-clock budget per execution.
            capture_output: Capture print/console output.
            system_prompt: Overrides the default code-writing system prompt.
            include_examples: Include worked examples in the first prompt.
            llm_options: Options forwarded to every generation call.

        Returns:
            GenerationResult of the first successful execution.

        Raises:
            RepairExhaustedError: No execution succeeded within the budget.
            ValueError: max_retries is negative.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")

        executor = CodeExecutor(
            bindings,
            timeout_ms=timeout_ms,
            capture_output=capture_output,
            policy=self.policy,
        )
        system = system_prompt or CODE_MODE_SYSTEM_PROMPT
        prompt = build_generation_prompt(
            interface_text, task_prompt, include_examples=include_examples
        )
        history: list[Attempt] = []
        total = 1 + max_retries

        for number in range(1, total + 1):
            response = await self.generator.generate(
                prompt, system_prompt=system, options=llm_options
            )
            code = extract_code(response)
            result = await executor.execute(code, args)
            attempt = Attempt(code=code, result=result)
            history.append(attempt)

            if result.success:
                logger.debug("Generated code succeeded on attempt %d/%d", number, total)
                return GenerationResult.from_attempt(attempt, history)

            logger.info(
                "Generated code failed on attempt %d/%d (%s): %s",
                number,
                total,
                result.error_kind.value if result.error_kind else "unknown",
                result.error,
            )
            if not self.retry_policy.should_retry(result):
                break
            prompt = build_repair_prompt(interface_text, task_prompt, code, result.error or "")

        last = history[-1]
        logger.warning(
            "Repair loop exhausted after %d attempt(s): %s", len(history), last.result.error
        )
        raise RepairExhaustedError(
            f"Code execution failed after {len(history) - 1} retries: {last.result.error}",
            attempts=len(history),
            last_error=last.result.error,
            last_code=last.code,
            details={"attempts": [a.result.error for a in history]},
        )
