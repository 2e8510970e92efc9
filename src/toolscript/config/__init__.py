"""Configuration module for toolscript."""

from toolscript.config.settings import (
    GenerationSettings,
    SandboxSettings,
    ToolscriptSettings,
    configure,
    get_settings,
    reset_settings,
)

__all__ = [
    "GenerationSettings",
    "SandboxSettings",
    "ToolscriptSettings",
    "configure",
    "get_settings",
    "reset_settings",
]
