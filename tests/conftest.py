"""Pytest configuration and fixtures for toolscript tests."""

from __future__ import annotations

from typing import Any

import pytest

from toolscript.config import reset_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Give every test its own global settings."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_toolset():
    """A local toolset with a few simple tools."""
    from toolscript import LocalToolset, tool

    @tool
    def add(a: int, b: int) -> int:
        """Add two numbers."""
        return a + b

    @tool(name="get-weather")
    async def weather(city: str, unit: str = "celsius") -> dict:
        """Current weather for a city."""
        return {"city": city, "temp": 21, "unit": unit}

    @tool
    def explode(reason: str) -> None:
        """Always fails."""
        raise RuntimeError(reason)

    return LocalToolset([add, weather, explode])


class RecordingDispatch:
    """Dispatcher that records every call and echoes the input back."""

    def __init__(self, results: dict[str, Any] | None = None) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.results = results or {}

    async def __call__(self, name: str, tool_input: Any) -> Any:
        self.calls.append((name, tool_input))
        result = self.results.get(name, tool_input)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def recording_dispatch():
    """Create a dispatcher that records calls."""
    return RecordingDispatch()
