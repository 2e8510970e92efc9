"""Base protocol for code generators.

Every backend that writes code for the repair loop (Anthropic, OpenAI, the
scripted test double) implements this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from toolscript.core.types import GenerationOptions


class CodeGenerator(ABC):
    """Abstract base class for code-writing backends.

    Implementations:
        - AnthropicGenerator (Claude models)
        - OpenAIGenerator (GPT models)
        - ScriptedGenerator (canned responses, for tests and demos)

    Example:
        generator = AnthropicGenerator(model="claude-sonnet-4-20250514")
        text = await generator.generate(
            "Write Python that returns 1 + 1",
            system_prompt=CODE_MODE_SYSTEM_PROMPT,
        )
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Generate a text response for a single prompt.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system prompt.
            options: Per-call model, temperature and token limit overrides.

        Returns:
            The raw response text, possibly containing a fenced code block.

        Raises:
            LLMError: If the API call fails.
            RateLimitError: If rate limited by the provider.
            AuthenticationError: If API key is invalid.
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Name of this backend (e.g., 'anthropic', 'openai')."""
        ...
