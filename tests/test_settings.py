"""Tests for configuration settings."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from toolscript.config import (
    GenerationSettings,
    SandboxSettings,
    ToolscriptSettings,
    configure,
    get_settings,
)


class TestSettingsDefaults:
    def test_sandbox_defaults(self):
        settings = SandboxSettings()
        assert settings.timeout_ms == 30_000
        assert settings.capture_output is True
        assert settings.max_source_length == 100_000

    def test_generation_defaults(self, monkeypatch):
        monkeypatch.delenv("TOOLSCRIPT_GENERATION_PROVIDER", raising=False)
        monkeypatch.delenv("TOOLSCRIPT_GENERATION_MAX_RETRIES", raising=False)
        settings = GenerationSettings()
        assert settings.provider == "anthropic"
        assert settings.max_retries == 2
        assert settings.include_examples is True

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            SandboxSettings(timeout_ms=0)
        with pytest.raises(ValidationError):
            GenerationSettings(max_retries=-1)


class TestEnvironment:
    def test_sandbox_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TOOLSCRIPT_SANDBOX_TIMEOUT_MS", "500")
        assert SandboxSettings().timeout_ms == 500

    def test_generation_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TOOLSCRIPT_GENERATION_PROVIDER", "openai")
        monkeypatch.setenv("TOOLSCRIPT_GENERATION_MAX_RETRIES", "5")
        settings = GenerationSettings()
        assert settings.provider == "openai"
        assert settings.max_retries == 5

    def test_api_key_alias(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
        settings = GenerationSettings(provider="anthropic")
        assert settings.api_key() == "env-key"

    def test_nested_defaults_read_env(self, monkeypatch):
        monkeypatch.setenv("TOOLSCRIPT_SANDBOX_CAPTURE_OUTPUT", "false")
        assert ToolscriptSettings().sandbox.capture_output is False


class TestFromFile:
    def test_yaml(self, tmp_path):
        pytest.importorskip("yaml")
        path = tmp_path / "toolscript.yaml"
        path.write_text("sandbox:\n  timeout_ms: 1234\ngeneration:\n  max_retries: 0\n")

        settings = ToolscriptSettings.from_file(path)

        assert settings.sandbox.timeout_ms == 1234
        assert settings.generation.max_retries == 0

    def test_json(self, tmp_path):
        path = tmp_path / "toolscript.json"
        path.write_text(json.dumps({"sandbox": {"capture_output": False}}))

        settings = ToolscriptSettings.from_file(path)

        assert settings.sandbox.capture_output is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ToolscriptSettings.from_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "settings.toml"
        path.write_text("")
        with pytest.raises(ValueError):
            ToolscriptSettings.from_file(path)

    def test_to_dict_excludes_secrets(self):
        settings = ToolscriptSettings(
            generation=GenerationSettings(anthropic_api_key="secret")
        )
        data = settings.to_dict()
        assert "anthropic_api_key" not in data["generation"]
        assert data["sandbox"]["timeout_ms"] == settings.sandbox.timeout_ms


class TestConfigure:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_configure_api_key(self):
        configure(provider="anthropic", anthropic_api_key="sk-test")
        assert get_settings().generation.api_key() == "sk-test"

    def test_configure_replaces_settings(self):
        custom = ToolscriptSettings(sandbox=SandboxSettings(timeout_ms=42))
        configure(settings=custom)
        assert get_settings() is custom

    def test_configure_limits(self):
        settings = configure(timeout_ms=250, max_retries=0)
        assert settings.sandbox.timeout_ms == 250
        assert settings.generation.max_retries == 0

        with pytest.raises(ValueError):
            configure(timeout_ms=0)
