"""
Sandbox policy definitions: import allowlist and the restricted builtins table.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable, Iterable, Sequence
from types import ModuleType
from typing import cast

BLOCKED_MODULES = [
    "os",
    "sys",
    "subprocess",
    "socket",
    "urllib",
    "requests",
    "http",
    "ctypes",
    "importlib",
    "shutil",
    "pathlib",
    "threading",
    "multiprocessing",
    "signal",
    "builtins",
]

BLOCKED_BUILTINS = [
    "__import__",
    "eval",
    "exec",
    "compile",
    "open",
    "input",
    "breakpoint",
    "globals",
    "vars",
    "help",
    "exit",
    "quit",
    "copyright",
    "credits",
    "license",
    # the output channel is a capability, not an ambient builtin
    "print",
]

ALLOWED_MODULES = [
    "math",
    "random",
    "itertools",
    "functools",
    "collections",
    "typing",
    "dataclasses",
    "json",
    "re",
    "string",
]

ImportHook = Callable[
    [str, dict[str, object] | None, dict[str, object] | None, Sequence[str], int],
    ModuleType,
]


def _normalize_modules(modules: Iterable[str] | None) -> set[str]:
    return {name for name in (modules or [])}


def build_import_guard(
    allowed_modules: Iterable[str] | None = None,
    blocked_modules: Iterable[str] | None = None,
) -> ImportHook:
    """
    Build a restricted __import__ hook that only allows allowlisted modules
    and explicitly blocks denied modules.
    """
    allowed = _normalize_modules(allowed_modules or ALLOWED_MODULES)
    blocked = _normalize_modules(blocked_modules or BLOCKED_MODULES)
    original_import = cast(ImportHook, builtins.__import__)

    def guarded_import(
        name: str,
        globals: dict[str, object] | None = None,
        locals: dict[str, object] | None = None,
        fromlist: Sequence[str] = (),
        level: int = 0,
    ) -> ModuleType:
        if level:
            raise ImportError("Relative imports are blocked by sandbox policy")
        root = name.split(".")[0]
        if root in blocked or name in blocked:
            raise ImportError(f"Import of '{root}' blocked by sandbox policy")
        if root not in allowed:
            raise ImportError(f"Import of '{root}' is not allowlisted")
        return original_import(name, globals, locals, fromlist, level)

    return guarded_import


def build_restricted_builtins(
    allowed_modules: Iterable[str] | None = None,
    blocked_modules: Iterable[str] | None = None,
    blocked_names: Iterable[str] | None = None,
) -> dict[str, object]:
    """Return a builtins table for the evaluated namespace.

    The host's ``builtins`` module is left untouched; only the evaluated code
    sees the reduced table.
    """
    blocked = _normalize_modules(blocked_names or BLOCKED_BUILTINS)
    table = {
        name: value
        for name, value in vars(builtins).items()
        if name not in blocked
    }
    table["__import__"] = build_import_guard(
        allowed_modules=allowed_modules,
        blocked_modules=blocked_modules,
    )
    return table
