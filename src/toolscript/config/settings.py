"""
Configuration settings for toolscript.

Uses Pydantic Settings for environment variable and file-based configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SandboxSettings(BaseSettings):
    """Sandbox executor configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLSCRIPT_SANDBOX_",
        env_file=".env",
        extra="ignore",
    )

    # Wall-clock budget per execution
    timeout_ms: int = Field(default=30_000, gt=0)
    capture_output: bool = True

    # Submissions longer than this are rejected before parsing
    max_source_length: int = Field(default=100_000, gt=0)


class GenerationSettings(BaseSettings):
    """Code generation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLSCRIPT_GENERATION_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str | None = None  # None uses the provider's default model
    base_url: str | None = None  # OpenAI-compatible endpoints only

    # API keys (loaded from environment)
    anthropic_api_key: SecretStr | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")

    # Generation parameters
    temperature: float | None = None
    max_tokens: int = Field(default=4096, gt=0)

    # Repair loop
    max_retries: int = Field(default=2, ge=0)
    include_examples: bool = True

    def api_key(self) -> str | None:
        """API key of the configured provider, if any."""
        secret = self.anthropic_api_key if self.provider == "anthropic" else self.openai_api_key
        return secret.get_secret_value() if secret else None


class ToolscriptSettings(BaseSettings):
    """
    Main configuration for toolscript.

    Supports loading from:
    - Environment variables (TOOLSCRIPT_* prefix)
    - .env file
    - YAML/JSON config files
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLSCRIPT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)

    @classmethod
    def from_file(cls, path: str | Path) -> ToolscriptSettings:
        """Load settings from a YAML or JSON file."""
        import json

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            try:
                import yaml
            except ImportError:
                raise ImportError("PyYAML required for YAML config files: pip install pyyaml")
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls(**(data or {}))

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary (excludes secrets)."""
        return self.model_dump(
            exclude={"generation": {"anthropic_api_key", "openai_api_key"}}
        )


# Global settings instance (lazy-loaded)
_settings: ToolscriptSettings | None = None


def get_settings() -> ToolscriptSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ToolscriptSettings()
    return _settings


def configure(
    settings: ToolscriptSettings | None = None,
    *,
    provider: Literal["anthropic", "openai"] | None = None,
    model: str | None = None,
    anthropic_api_key: str | None = None,
    openai_api_key: str | None = None,
    timeout_ms: int | None = None,
    max_retries: int | None = None,
) -> ToolscriptSettings:
    """
    Configure toolscript globally.

    Simple usage - just provide your API key:
        import toolscript
        toolscript.configure(anthropic_api_key="sk-ant-...")

    Full settings:
        from toolscript.config import ToolscriptSettings
        toolscript.configure(settings=ToolscriptSettings(...))

    Args:
        settings: Full settings object (replaces the current one)
        provider: Code generation provider
        model: Code generation model
        anthropic_api_key: Anthropic/Claude API key
        openai_api_key: OpenAI API key
        timeout_ms: Default sandbox timeout
        max_retries: Default repair loop retry budget

    Returns:
        The active settings.
    """
    global _settings

    if settings is not None:
        _settings = settings
        return settings

    current = get_settings()
    if provider is not None:
        current.generation.provider = provider
    if model is not None:
        current.generation.model = model
    if anthropic_api_key:
        current.generation.anthropic_api_key = SecretStr(anthropic_api_key)
    if openai_api_key:
        current.generation.openai_api_key = SecretStr(openai_api_key)
    if timeout_ms is not None:
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        current.sandbox.timeout_ms = timeout_ms
    if max_retries is not None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        current.generation.max_retries = max_retries
    return current


def reset_settings() -> None:
    """Drop the global settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
