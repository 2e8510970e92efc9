"""Output capture for sandboxed code: a ``print`` replacement and a ``console`` object."""

from __future__ import annotations

import json
from typing import Any

_PREFIXES = {
    "log": "",
    "info": "[INFO] ",
    "debug": "[DEBUG] ",
    "warn": "[WARN] ",
    "error": "[ERROR] ",
}


def render_value(value: Any) -> str:
    """Scalars as-is, structured values as indented JSON."""
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, indent=2, default=str)
        except (TypeError, ValueError):
            # Non-string keys or circular references
            return repr(value)
    return str(value)


class Console:
    """The ``console`` object visible to sandboxed code."""

    def __init__(self, capture: OutputCapture) -> None:
        self._capture = capture

    def log(self, *values: Any, sep: str = " ") -> None:
        self._capture.append("log", values, sep)

    def info(self, *values: Any, sep: str = " ") -> None:
        self._capture.append("info", values, sep)

    def debug(self, *values: Any, sep: str = " ") -> None:
        self._capture.append("debug", values, sep)

    def warn(self, *values: Any, sep: str = " ") -> None:
        self._capture.append("warn", values, sep)

    warning = warn

    def error(self, *values: Any, sep: str = " ") -> None:
        self._capture.append("error", values, sep)


class OutputCapture:
    """
    Ordered, append-only log of one execution.

    Every call to ``print`` or a ``console`` method becomes exactly one entry,
    in call order. When disabled, calls are accepted and discarded.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._entries: list[str] = []
        self.console = Console(self)

    def append(self, level: str, values: tuple[Any, ...], sep: str = " ") -> None:
        if not self.enabled:
            return
        message = str(sep).join(render_value(v) for v in values)
        self._entries.append(_PREFIXES[level] + message)

    def print(self, *values: Any, sep: str | None = " ", end: str | None = "\n", **_: Any) -> None:
        # end, file and flush are accepted for compatibility; one call is one entry
        self.append("log", values, " " if sep is None else sep)

    def snapshot(self) -> list[str]:
        return list(self._entries)
