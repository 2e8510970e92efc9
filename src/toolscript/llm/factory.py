"""Select a code generator from configuration."""

from __future__ import annotations

import logging

from toolscript.config.settings import GenerationSettings, ToolscriptSettings, get_settings
from toolscript.core.types import GenerationOptions
from toolscript.exceptions import ConfigurationError
from toolscript.llm.base import CodeGenerator

logger = logging.getLogger(__name__)


def create_generator(
    settings: ToolscriptSettings | GenerationSettings | None = None,
) -> CodeGenerator:
    """Build the code generator named by the generation settings.

    Args:
        settings: Full or generation-only settings. Defaults to the global
            settings.

    Returns:
        A configured CodeGenerator. The provider SDK is imported on first use.

    Raises:
        ConfigurationError: If the provider is unknown.
    """
    if settings is None:
        settings = get_settings()
    generation = settings.generation if isinstance(settings, ToolscriptSettings) else settings

    defaults = GenerationOptions(
        model=generation.model,
        temperature=generation.temperature,
        max_tokens=generation.max_tokens,
    )
    logger.debug("Creating %s code generator", generation.provider)

    if generation.provider == "anthropic":
        from toolscript.llm.providers.anthropic_ import DEFAULT_ANTHROPIC_MODEL, AnthropicGenerator

        return AnthropicGenerator(
            api_key=generation.api_key(),
            model=generation.model or DEFAULT_ANTHROPIC_MODEL,
            defaults=defaults,
        )

    if generation.provider == "openai":
        from toolscript.llm.providers.openai_ import DEFAULT_OPENAI_MODEL, OpenAIGenerator

        return OpenAIGenerator(
            api_key=generation.api_key(),
            model=generation.model or DEFAULT_OPENAI_MODEL,
            base_url=generation.base_url,
            defaults=defaults,
        )

    raise ConfigurationError(f"Unknown code generation provider: {generation.provider}")
