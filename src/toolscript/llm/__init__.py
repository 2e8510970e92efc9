"""Code generation backends for toolscript."""

from toolscript.core.types import GenerationOptions
from toolscript.llm.base import CodeGenerator
from toolscript.llm.factory import create_generator

__all__ = [
    "CodeGenerator",
    "GenerationOptions",
    "create_generator",
]
