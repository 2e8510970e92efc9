"""Scripted code generator for testing and development.

Replays canned responses without requiring API keys. It can be used to:
- Test the repair loop deterministically
- Run demos without API costs
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Union

from toolscript.core.types import GenerationOptions
from toolscript.exceptions import LLMError
from toolscript.llm.base import CodeGenerator

logger = logging.getLogger(__name__)

Responder = Callable[[str], str]
"""Computes a response from the prompt it receives."""


@dataclass
class GenerationCall:
    """One recorded call to a ScriptedGenerator."""

    prompt: str
    system_prompt: str | None
    options: GenerationOptions | None


class ScriptedGenerator(CodeGenerator):
    """Code generator that returns scripted responses in order.

    Each response is either a string or a callable that receives the prompt
    and returns the response text. Every call is recorded in ``calls``.

    Example:
        generator = ScriptedGenerator([
            "```python\\nraise ValueError('first try')\\n```",
            "```python\\nreturn 42\\n```",
        ])
        result = await RepairLoop(generator).run(task, interface_text, bindings)
        assert len(generator.calls) == 2
    """

    def __init__(
        self,
        responses: Iterable[Union[str, Responder]] = (),
        *,
        repeat_last: bool = False,
    ) -> None:
        """Initialize the scripted generator.

        Args:
            responses: Responses returned by successive calls.
            repeat_last: Keep returning the last response once the script
                runs out, instead of raising LLMError.
        """
        self._responses = list(responses)
        self.repeat_last = repeat_last
        self.calls: list[GenerationCall] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Return the next scripted response."""
        index = len(self.calls)
        self.calls.append(GenerationCall(prompt, system_prompt, options))

        if index >= len(self._responses):
            if not (self.repeat_last and self._responses):
                raise LLMError(
                    f"ScriptedGenerator has no response for call #{index + 1}",
                    provider="scripted",
                )
            index = len(self._responses) - 1

        response = self._responses[index]
        logger.debug("ScriptedGenerator call #%d", len(self.calls))
        if callable(response):
            return response(prompt)
        return response

    @property
    def provider_name(self) -> str:
        return "scripted"
