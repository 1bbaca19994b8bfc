"""
Default capabilities exposed to evaluated code.

These objects are built inside the sandbox child process. Caller-supplied
capabilities are merged on top and may shadow any of them by name.
"""

from __future__ import annotations

import builtins
import functools
import itertools
import os
import sys
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TextIO

_SECRET_TOKENS = ("api_key", "apikey", "token", "secret", "password")

DEFAULT_CAPABILITY_NAMES = (
    "print",
    "set_timeout",
    "clear_timeout",
    "set_interval",
    "clear_interval",
    "Buffer",
    "process",
)


class Timers:
    """Timer primitives backed by daemon threads, keyed by integer handles."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._active: dict[int, threading.Timer] = {}

    def _schedule(self, handle: int, delay_s: float, fire: Callable[[], None]) -> None:
        timer = threading.Timer(delay_s, fire)
        timer.daemon = True
        with self._lock:
            self._active[handle] = timer
        timer.start()

    def set_timeout(self, callback: Callable[..., object], delay_ms: float = 0, *args: object) -> int:
        handle = next(self._ids)

        def fire() -> None:
            with self._lock:
                if self._active.pop(handle, None) is None:
                    return
            callback(*args)

        self._schedule(handle, max(0.0, float(delay_ms)) / 1000, fire)
        return handle

    def set_interval(self, callback: Callable[..., object], delay_ms: float = 0, *args: object) -> int:
        handle = next(self._ids)
        delay_s = max(0.001, float(delay_ms) / 1000)

        def fire() -> None:
            with self._lock:
                if handle not in self._active:
                    return
            callback(*args)
            with self._lock:
                if handle not in self._active:
                    return
            self._schedule(handle, delay_s, fire)

        self._schedule(handle, delay_s, fire)
        return handle

    def clear(self, handle: int | None) -> None:
        if handle is None:
            return
        with self._lock:
            timer = self._active.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> int:
        with self._lock:
            pending = list(self._active.values())
            self._active.clear()
        for timer in pending:
            timer.cancel()
        return len(pending)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._active)


class ProcessInfo:
    """Read-only view of the hosting process. Nothing here can change host state."""

    __slots__ = ("_env", "_cwd", "_platform", "_pid")

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        source = os.environ if environ is None else environ
        self._env = MappingProxyType(
            {key: value for key, value in source.items() if not _is_secret(key)}
        )
        self._cwd = os.getcwd()
        self._platform = sys.platform
        self._pid = os.getpid()

    @property
    def env(self) -> Mapping[str, str]:
        return self._env

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def pid(self) -> int:
        return self._pid

    def cwd(self) -> str:
        return self._cwd

    def __repr__(self) -> str:
        return f"ProcessInfo(pid={self._pid}, platform={self._platform!r})"


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(token in lowered for token in _SECRET_TOKENS)


def build_default_capabilities(
    timers: Timers,
    output: TextIO,
    environ: Mapping[str, str] | None = None,
) -> dict[str, object]:
    return {
        "print": functools.partial(builtins.print, file=output),
        "set_timeout": timers.set_timeout,
        "clear_timeout": timers.clear,
        "set_interval": timers.set_interval,
        "clear_interval": timers.clear,
        "Buffer": bytearray,
        "process": ProcessInfo(environ),
    }
