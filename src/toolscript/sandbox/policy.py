"""
Capability policy for sandboxed execution.

The policy is a declarative table of what generated code can see:

- ``builtins``: builtin names copied into the restricted ``__builtins__``
- ``modules``: importable modules, exposed as read-only views of their
  public, non-module attributes
- ``denied``: names bound to ``None`` in the execution namespace

Anything on the denied list resolves to ``None`` instead of raising. Code
that checks ``if os is None`` gets a consistent "not available" answer, and
code that goes on to call it fails with an ordinary ``TypeError`` or
``AttributeError`` like any other bug.

``compile()`` validates source via AST analysis before anything runs. It
rejects the introspection routes out of the namespace (dunder attributes,
frame and code objects, format-string attribute traversal, and
``str.format`` on anything but a string literal), then wraps the
module body in an ``async def`` so top-level ``return`` and ``await`` work.
Line numbers of the submitted code are preserved.
"""

from __future__ import annotations

import ast
import asyncio
import bisect
import builtins
import collections
import copy
import datetime
import decimal
import fractions
import functools
import heapq
import itertools
import json
import math
import operator
import random
import re
import statistics
import string
import textwrap
import time
import types
import unicodedata
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from toolscript.exceptions import SandboxViolationError

SANDBOX_FILENAME = "<sandbox>"
ENTRYPOINT_NAME = "__sandbox_main__"


def module_view(module: types.ModuleType, names: list[str] | None = None) -> types.SimpleNamespace:
    """Read-only view of a module's public, non-module attributes."""
    if names is None:
        names = [
            name
            for name, value in vars(module).items()
            if not name.startswith("_") and not isinstance(value, types.ModuleType)
        ]
    view = types.SimpleNamespace(**{name: getattr(module, name) for name in sorted(names)})
    return view


# Safe, side-effect-free stdlib modules
DEFAULT_MODULES: dict[str, Any] = {
    "math": math,
    "re": re,
    "json": json,
    "collections": collections,
    "itertools": itertools,
    "functools": functools,
    "textwrap": textwrap,
    "unicodedata": unicodedata,
    "datetime": datetime,
    "decimal": decimal,
    "fractions": fractions,
    "random": random,
    "statistics": statistics,
    "copy": copy,
    "bisect": bisect,
    "heapq": heapq,
}

# Modules that are only partially exposed
PARTIAL_MODULES: dict[str, tuple[types.ModuleType, list[str]]] = {
    "asyncio": (asyncio, ["sleep", "gather", "wait_for", "TimeoutError"]),
    "time": (time, ["time", "monotonic", "perf_counter"]),
    "string": (
        string,
        [
            "ascii_letters",
            "ascii_lowercase",
            "ascii_uppercase",
            "capwords",
            "digits",
            "hexdigits",
            "octdigits",
            "printable",
            "punctuation",
            "Template",
            "whitespace",
        ],
    ),
    # attrgetter and methodcaller would be getattr by another name
    "operator": (
        operator,
        [n for n in dir(operator) if not n.startswith("_") and n not in ("attrgetter", "methodcaller")],
    ),
    "uuid": (uuid, ["NAMESPACE_DNS", "NAMESPACE_URL", "UUID", "uuid3", "uuid4", "uuid5"]),
}

DEFAULT_BUILTINS: frozenset[str] = frozenset(
    {
        # Types and constructors
        "int",
        "float",
        "str",
        "bool",
        "bytes",
        "bytearray",
        "complex",
        "list",
        "tuple",
        "dict",
        "set",
        "frozenset",
        "slice",
        "range",
        "object",
        # Iteration and generators
        "iter",
        "next",
        "aiter",
        "anext",
        "reversed",
        "enumerate",
        "zip",
        "map",
        "filter",
        "sorted",
        # Math and numeric
        "abs",
        "round",
        "min",
        "max",
        "sum",
        "pow",
        "divmod",
        "bin",
        "oct",
        "hex",
        # String and representation
        "repr",
        "ascii",
        "chr",
        "ord",
        "format",
        "hash",
        # Type checking
        "isinstance",
        "issubclass",
        "callable",
        "len",
        "hasattr",
        "dir",
        # Boolean
        "all",
        "any",
        # Exceptions (needed for try/except and raise)
        "Exception",
        "ArithmeticError",
        "AssertionError",
        "AttributeError",
        "ImportError",
        "IndexError",
        "KeyError",
        "LookupError",
        "NameError",
        "NotImplementedError",
        "OverflowError",
        "RuntimeError",
        "StopIteration",
        "StopAsyncIteration",
        "TimeoutError",
        "TypeError",
        "ValueError",
        "ZeroDivisionError",
        # Class statements
        "__build_class__",
    }
)

DEFAULT_DENIED: frozenset[str] = frozenset(
    {
        # Process and environment
        "os",
        "sys",
        "subprocess",
        "signal",
        "multiprocessing",
        "threading",
        "ctypes",
        # Filesystem
        "open",
        "io",
        "pathlib",
        "shutil",
        "tempfile",
        "glob",
        # Network
        "socket",
        "http",
        "urllib",
        "ssl",
        # Dynamic code and module loading
        "eval",
        "exec",
        "compile",
        "importlib",
        "builtins",
        "pickle",
        "marshal",
        # Namespace introspection and manipulation
        "globals",
        "locals",
        "vars",
        "getattr",
        "setattr",
        "delattr",
        "type",
        "memoryview",
        # Interactive
        "input",
        "breakpoint",
        "exit",
        "quit",
        "help",
        # Current file and directory identifiers
        "__file__",
        "__path__",
        "__spec__",
        "__loader__",
        "__cached__",
    }
)

# Dunder attributes that are allowed (safe ones)
ALLOWED_DUNDERS: frozenset[str] = frozenset(
    {
        "__init__",
        "__str__",
        "__repr__",
        "__len__",
        "__eq__",
        "__ne__",
        "__lt__",
        "__le__",
        "__gt__",
        "__ge__",
        "__hash__",
        "__bool__",
        "__contains__",
        "__iter__",
        "__next__",
        "__getitem__",
        "__setitem__",
        "__delitem__",
        "__add__",
        "__sub__",
        "__mul__",
        "__truediv__",
        "__floordiv__",
        "__mod__",
        "__enter__",
        "__exit__",
        "__aenter__",
        "__aexit__",
        "__call__",
        "__name__",
        "__doc__",
    }
)

# Attributes that lead from ordinary objects to frames, code and globals
BLOCKED_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "gi_frame",
        "gi_code",
        "gi_yieldfrom",
        "cr_frame",
        "cr_code",
        "cr_await",
        "ag_frame",
        "ag_code",
        "ag_await",
        "tb_frame",
        "tb_next",
        "f_globals",
        "f_locals",
        "f_builtins",
        "f_back",
        "f_code",
        "co_code",
        "get_coro",
    }
)

_FORMATTER = string.Formatter()
_FORMAT_METHODS: frozenset[str] = frozenset({"format", "format_map"})
_FIELD_INDEX = re.compile(r"\[[^\]]*\]")


def _format_traversal(text: str) -> bool:
    """Whether ``text``, used as a format string, walks into a private or blocked attribute."""
    try:
        fields = list(_FORMATTER.parse(text))
    except ValueError:
        return False
    for _, field_name, format_spec, _ in fields:
        if field_name:
            for attr in _FIELD_INDEX.sub("", field_name).split(".")[1:]:
                attr = attr.strip()
                if attr.startswith("_") or attr in BLOCKED_ATTRIBUTES:
                    return True
        if format_spec and _format_traversal(format_spec):
            return True
    return False


def _is_str_literal(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and isinstance(node.value, str)


@dataclass(frozen=True)
class CapabilityPolicy:
    """
    Declarative allow-list for the execution namespace.

    Usage:
        policy = CapabilityPolicy()
        program = policy.compile("return 1 + 1")
        namespace = policy.build_namespace({"tools": tools, "args": {}})
    """

    builtins: frozenset[str] = DEFAULT_BUILTINS
    modules: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_MODULES))
    partial_modules: Mapping[str, tuple[types.ModuleType, list[str]]] = field(
        default_factory=lambda: dict(PARTIAL_MODULES)
    )
    denied: frozenset[str] = DEFAULT_DENIED
    max_source_length: int = 100_000

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_source(self, source: str) -> tuple[bool, str]:
        """
        Validate source code using AST analysis.

        Checks for:
        - Source code length within limits
        - Non-empty source
        - Syntactically valid Python
        - No dangerous dunder or frame attribute access
        - No attribute traversal inside format strings, and no
          ``format``/``format_map`` calls on strings built at runtime

        Args:
            source: Python source code to validate.

        Returns:
            A tuple of (is_safe, reason). If is_safe is True, reason is "OK".
        """
        try:
            self._parse_and_check(source)
        except SandboxViolationError as e:
            return False, str(e)
        except SyntaxError as e:
            return False, f"Syntax error in source code: {e}"
        return True, "OK"

    def _parse_and_check(self, source: str) -> ast.Module:
        if len(source) > self.max_source_length:
            raise SandboxViolationError(
                f"Source code exceeds maximum length of {self.max_source_length} characters "
                f"(got {len(source)})"
            )
        if not source.strip():
            raise SandboxViolationError("Source code is empty")

        tree = ast.parse(source, filename=SANDBOX_FILENAME)

        violations: list[str] = []
        for node in ast.walk(tree):
            if isinstance(node, ast.Attribute):
                attr = node.attr
                if attr.startswith("__") and attr.endswith("__") and attr not in ALLOWED_DUNDERS:
                    violations.append(f"access to attribute '{attr}' (line {node.lineno})")
                elif attr in BLOCKED_ATTRIBUTES:
                    violations.append(f"access to attribute '{attr}' (line {node.lineno})")
                # A format string built at runtime cannot be checked here
                elif attr in _FORMAT_METHODS and not _is_str_literal(node.value):
                    violations.append(
                        f"'{attr}' called on something other than a string literal "
                        f"(line {node.lineno})"
                    )
            elif _is_str_literal(node):
                if _format_traversal(node.value):
                    violations.append(
                        f"format string attribute traversal (line {node.lineno})"
                    )

        if violations:
            raise SandboxViolationError("Code is not permitted in the sandbox", violations=violations)
        return tree

    def compile(self, source: str) -> types.CodeType:
        """
        Validate ``source`` and compile it into the sandbox entrypoint.

        The module body becomes the body of ``async def __sandbox_main__()``,
        so executing the returned code object defines the entrypoint in the
        target namespace without running any submitted code.

        Raises:
            SyntaxError: The source does not parse.
            SandboxViolationError: The source fails validation.
        """
        tree = self._parse_and_check(source)
        body = tree.body or [ast.Pass()]

        entry = ast.AsyncFunctionDef(
            name=ENTRYPOINT_NAME,
            args=ast.arguments(
                posonlyargs=[],
                args=[],
                vararg=None,
                kwonlyargs=[],
                kw_defaults=[],
                kwarg=None,
                defaults=[],
            ),
            body=body,
            decorator_list=[],
            returns=None,
            type_comment=None,
            type_params=[],
            lineno=1,
            col_offset=0,
        )
        module = ast.Module(body=[entry], type_ignores=[])
        ast.fix_missing_locations(module)
        return compile(module, SANDBOX_FILENAME, "exec", dont_inherit=True)

    # ------------------------------------------------------------------
    # Namespace construction
    # ------------------------------------------------------------------

    def _views(self) -> dict[str, types.SimpleNamespace]:
        views = {name: module_view(module) for name, module in self.modules.items()}
        for name, (module, names) in self.partial_modules.items():
            views[name] = module_view(module, names)
        return views

    def _make_importer(self, views: Mapping[str, types.SimpleNamespace]) -> Callable[..., Any]:
        def restricted_import(
            name: str,
            globals: Any = None,
            locals: Any = None,
            fromlist: Any = (),
            level: int = 0,
        ) -> Any:
            base = name.split(".", 1)[0]
            if level != 0 or base not in views:
                raise ImportError(f"No module named '{name}' is available in the sandbox")
            return views[base]

        return restricted_import

    def build_namespace(self, injected: Mapping[str, Any]) -> dict[str, Any]:
        """
        Build a fresh globals dictionary for one execution.

        Includes:
        - Restricted builtins (allow-list only, with a restricted importer)
        - Allowed module views under their module names
        - ``None`` for every denied name
        - ``injected`` values (tools, args, console, print)

        Args:
            injected: Names provided by the executor.

        Returns:
            Globals dictionary; never shared between executions.
        """
        views = self._views()

        safe_builtins: dict[str, Any] = {
            name: getattr(builtins, name) for name in self.builtins if hasattr(builtins, name)
        }
        safe_builtins["True"] = True
        safe_builtins["False"] = False
        safe_builtins["None"] = None
        safe_builtins["__import__"] = self._make_importer(views)
        for name in self.denied:
            safe_builtins[name] = None

        namespace: dict[str, Any] = {"__builtins__": safe_builtins, "__name__": "__sandbox__"}
        namespace.update(views)
        for name in self.denied:
            namespace[name] = None
        namespace.update(injected)
        return namespace
