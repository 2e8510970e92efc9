"""Name conversions shared by the interface text and the ``tools`` namespace."""

from __future__ import annotations

import keyword
import re
from typing import Iterable

_NON_WORD = re.compile(r"\W")


def python_identifier(name: str) -> str:
    """Identifier alias for a tool or property name (``get-weather`` -> ``get_weather``)."""
    ident = _NON_WORD.sub("_", name)
    if not ident or ident[0].isdigit():
        ident = f"_{ident}"
    if keyword.iskeyword(ident):
        ident = f"{ident}_"
    return ident


def pascal_case(name: str) -> str:
    """``list_directory`` -> ``ListDirectory``."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    return "".join(p[0].upper() + p[1:] for p in parts) or "Tool"


def unique_identifiers(names: Iterable[str]) -> dict[str, str]:
    """
    Map each name to an identifier no other name in ``names`` maps to.

    Names that already are identifiers keep themselves. The others get their
    ``python_identifier`` alias, with ``_2``, ``_3`` and so on appended, in
    order, when that alias is taken (``get_weather`` and ``get-weather``
    become ``get_weather`` and ``get_weather_2``).
    """
    ordered = list(dict.fromkeys(names))
    taken = {name for name in ordered if python_identifier(name) == name}
    result: dict[str, str] = {}
    for name in ordered:
        if name in taken:
            result[name] = name
            continue
        base = python_identifier(name)
        ident, n = base, 2
        while ident in taken:
            ident, n = f"{base}_{n}", n + 1
        taken.add(ident)
        result[name] = ident
    return result
