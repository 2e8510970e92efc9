"""Anthropic Claude code generator."""

from __future__ import annotations

import logging
import os
from typing import Any

from toolscript.core.types import GenerationOptions
from toolscript.exceptions import AuthenticationError, LLMError, RateLimitError
from toolscript.llm.base import CodeGenerator

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"


class AnthropicGenerator(CodeGenerator):
    """Code generator backed by the Anthropic Messages API.

    Example:
        from toolscript.llm.providers import AnthropicGenerator

        generator = AnthropicGenerator()  # Uses ANTHROPIC_API_KEY env var
        text = await generator.generate("Return the sum of 2 and 3")
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        defaults: GenerationOptions | None = None,
    ):
        """Initialize the Anthropic generator.

        Args:
            api_key: Anthropic API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Model used when a call does not name one.
            defaults: Options applied when a call passes none.
        """
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self.defaults = defaults or GenerationOptions()
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise LLMError(
                    "anthropic package not installed. "
                    "Install with: pip install toolscript[anthropic]",
                    provider="anthropic",
                )

            if not self._api_key:
                raise AuthenticationError(
                    "Anthropic API key not found. "
                    "Set ANTHROPIC_API_KEY environment variable or pass api_key parameter.",
                    provider="anthropic",
                )

            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Generate a response from Claude."""
        client = self._get_client()
        options = options or self.defaults
        model = options.model or self.model

        request_params: dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            **options.extra_params,
        }

        if options.temperature is not None:
            request_params["temperature"] = options.temperature

        if system_prompt:
            request_params["system"] = system_prompt

        try:
            import anthropic

            response = await client.messages.create(**request_params)
        except anthropic.RateLimitError as e:
            raise RateLimitError(
                f"Anthropic rate limit exceeded: {e}", provider="anthropic", model=model, cause=e
            ) from e
        except anthropic.AuthenticationError as e:
            raise AuthenticationError(
                f"Anthropic authentication failed: {e}", provider="anthropic", model=model, cause=e
            ) from e
        except anthropic.APIError as e:
            raise LLMError(
                f"Anthropic API error: {e}", provider="anthropic", model=model, cause=e
            ) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        logger.debug(
            "Anthropic generation: model=%s input_tokens=%s output_tokens=%s",
            response.model,
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return text

    @property
    def provider_name(self) -> str:
        return "anthropic"
