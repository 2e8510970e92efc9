"""OpenAI code generator."""

from __future__ import annotations

import logging
import os
from typing import Any

from toolscript.core.types import GenerationOptions
from toolscript.exceptions import AuthenticationError, LLMError, RateLimitError
from toolscript.llm.base import CodeGenerator

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o"


class OpenAIGenerator(CodeGenerator):
    """Code generator backed by the OpenAI Chat Completions API.

    Example:
        from toolscript.llm.providers import OpenAIGenerator

        generator = OpenAIGenerator()  # Uses OPENAI_API_KEY env var
        text = await generator.generate("Return the sum of 2 and 3")
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        defaults: GenerationOptions | None = None,
    ):
        """Initialize the OpenAI generator.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            model: Model used when a call does not name one.
            base_url: Alternative endpoint for OpenAI-compatible servers.
            defaults: Options applied when a call passes none.
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self.base_url = base_url
        self.defaults = defaults or GenerationOptions()
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize the OpenAI client."""
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise LLMError(
                    "openai package not installed. "
                    "Install with: pip install toolscript[openai]",
                    provider="openai",
                )

            if not self._api_key:
                raise AuthenticationError(
                    "OpenAI API key not found. "
                    "Set OPENAI_API_KEY environment variable or pass api_key parameter.",
                    provider="openai",
                )

            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self.base_url)

        return self._client

    def _convert_messages(self, prompt: str, system_prompt: str | None) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Generate a response from GPT."""
        client = self._get_client()
        options = options or self.defaults
        model = options.model or self.model

        request_params: dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens,
            "messages": self._convert_messages(prompt, system_prompt),
            **options.extra_params,
        }

        if options.temperature is not None:
            request_params["temperature"] = options.temperature

        try:
            import openai

            response = await client.chat.completions.create(**request_params)
        except openai.RateLimitError as e:
            raise RateLimitError(
                f"OpenAI rate limit exceeded: {e}", provider="openai", model=model, cause=e
            ) from e
        except openai.AuthenticationError as e:
            raise AuthenticationError(
                f"OpenAI authentication failed: {e}", provider="openai", model=model, cause=e
            ) from e
        except openai.APIError as e:
            raise LLMError(f"OpenAI API error: {e}", provider="openai", model=model, cause=e) from e

        if response.usage:
            logger.debug(
                "OpenAI generation: model=%s prompt_tokens=%s completion_tokens=%s",
                response.model,
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
            )
        return response.choices[0].message.content or ""

    @property
    def provider_name(self) -> str:
        return "openai"
