"""Code mode: tool interface generation, prompts and the repair loop."""

from toolscript.codemode.api import NO_TOOLS_TEXT, build_bindings, build_interface_text
from toolscript.codemode.prompts import (
    CODE_MODE_EXAMPLES,
    CODE_MODE_SYSTEM_PROMPT,
    build_generation_prompt,
    build_repair_prompt,
    extract_code,
)
from toolscript.codemode.repair import DEFAULT_MAX_RETRIES, RepairLoop, RetryPolicy

__all__ = [
    "CODE_MODE_EXAMPLES",
    "CODE_MODE_SYSTEM_PROMPT",
    "DEFAULT_MAX_RETRIES",
    "NO_TOOLS_TEXT",
    "RepairLoop",
    "RetryPolicy",
    "build_bindings",
    "build_generation_prompt",
    "build_interface_text",
    "build_repair_prompt",
    "extract_code",
]
