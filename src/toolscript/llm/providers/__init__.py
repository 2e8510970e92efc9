"""Code generator implementations."""

from toolscript.llm.providers.anthropic_ import AnthropicGenerator
from toolscript.llm.providers.mock import GenerationCall, ScriptedGenerator
from toolscript.llm.providers.openai_ import OpenAIGenerator

__all__ = [
    "AnthropicGenerator",
    "GenerationCall",
    "OpenAIGenerator",
    "ScriptedGenerator",
]
