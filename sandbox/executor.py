"""
Subprocess-based sandbox executor for patched programs.
"""

from __future__ import annotations

import json
import logging
import math
import os
import pickle
import subprocess
import sys
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, cast

from carpatch_core.errors import CapabilityError, ExecutionFault, ExecutionTimeout
from sandbox import policy
from sandbox import protocol

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    success: bool
    result: Any
    error: str | None
    runtime_ms: float
    timed_out: bool = False
    output: str = ""
    result_is_repr: bool = False
    timeout_ms: int | None = None

    def unwrap(self) -> Any:
        """Return the program's result or raise ExecutionTimeout / ExecutionFault."""
        if self.timed_out:
            raise ExecutionTimeout(self.timeout_ms or 0)
        if not self.success:
            raise ExecutionFault(self.error or "Unknown sandbox failure")
        return self.result


class _ChildStreams:
    """Drain a child's stdout and stderr on daemon threads.

    ``started`` is set once the first stdout line (or EOF) arrives, ``finished``
    once stdout reaches EOF.
    """

    def __init__(self, proc: subprocess.Popen[str]) -> None:
        self.first_line = ""
        self.stdout = ""
        self.stderr = ""
        self.started = threading.Event()
        self.finished = threading.Event()
        self._threads = [
            threading.Thread(target=self._read_stdout, args=(proc.stdout,), daemon=True),
            threading.Thread(target=self._read_stderr, args=(proc.stderr,), daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    @property
    def ready(self) -> bool:
        return self.first_line.rstrip("\n") == protocol.READY_LINE

    @property
    def response(self) -> str:
        return self.stdout if self.ready else self.first_line + self.stdout

    def _read_stdout(self, stream: IO[str]) -> None:
        try:
            self.first_line = stream.readline()
            self.started.set()
            self.stdout = stream.read()
        finally:
            self.started.set()
            self.finished.set()

    def _read_stderr(self, stream: IO[str]) -> None:
        self.stderr = stream.read()

    def join(self, timeout: float) -> None:
        for thread in self._threads:
            thread.join(timeout)


class SandboxExecutor:
    """
    Execute patched code in a subprocess with best-effort limits.

    On Unix platforms, CPU and memory limits are enforced via resource.setrlimit.
    On Windows, these limits degrade gracefully and only wall-clock timeout applies.
    """

    DEFAULT_MEMORY_LIMIT_MB: int = 256
    DEFAULT_TIMEOUT_MS: int = 5000
    STARTUP_TIMEOUT_S: float = 10.0
    EXIT_GRACE_S: float = 1.0

    def __init__(
        self,
        memory_limit_mb: int | None = None,
        allowed_modules: list[str] | None = None,
    ) -> None:
        self.memory_limit_mb: int = memory_limit_mb or self.DEFAULT_MEMORY_LIMIT_MB
        self.allowed_modules: list[str] = list(allowed_modules or policy.ALLOWED_MODULES)

    def execute(
        self,
        code: str,
        capabilities: Mapping[str, object] | None = None,
        timeout_ms: int | None = None,
    ) -> ExecutionResult:
        """Run ``code`` in a fresh child process.

        The ``timeout_ms`` deadline starts when the child reports it is ready, so
        interpreter startup is bounded separately by ``STARTUP_TIMEOUT_S``.
        """
        if timeout_ms is None:
            timeout_ms = self.DEFAULT_TIMEOUT_MS
        elif timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        payload = {
            "code": code,
            "capabilities": self.encode_capabilities(capabilities),
            "allowed_modules": self.allowed_modules,
        }

        env = os.environ.copy()
        project_root = str(Path(__file__).resolve().parents[1])
        existing_pythonpath = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = (
            f"{project_root}{os.pathsep}{existing_pythonpath}"
            if existing_pythonpath
            else project_root
        )

        proc = subprocess.Popen(
            [sys.executable, "-c", protocol.CHILD_TEMPLATE],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            env=env,
            preexec_fn=self._limit_resources(timeout_ms) if os.name != "nt" else None,
        )
        streams = _ChildStreams(proc)
        try:
            assert proc.stdin is not None
            proc.stdin.write(json.dumps(payload))
            proc.stdin.close()
        except (BrokenPipeError, OSError) as exc:
            logger.debug(f"Sandbox closed stdin early: {exc}")

        if not streams.started.wait(self.STARTUP_TIMEOUT_S):
            self._kill(proc, streams)
            error = f"Sandbox did not start within {self.STARTUP_TIMEOUT_S:.0f}s"
            logger.warning(error)
            return ExecutionResult(False, None, error, 0.0, timeout_ms=timeout_ms)

        start = time.perf_counter()
        if not streams.finished.wait(timeout_ms / 1000):
            self._kill(proc, streams)
            runtime_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"Sandbox timed out after {runtime_ms:.0f}ms (limit {timeout_ms}ms)")
            return ExecutionResult(
                success=False,
                result=None,
                error=f"Timeout after {timeout_ms}ms",
                runtime_ms=runtime_ms,
                timed_out=True,
                timeout_ms=timeout_ms,
            )

        runtime_ms = (time.perf_counter() - start) * 1000
        try:
            proc.wait(timeout=self.EXIT_GRACE_S)
        except subprocess.TimeoutExpired:
            logger.debug("Sandbox lingered after responding; killing it")
            proc.kill()
            proc.wait()
        streams.join(self.EXIT_GRACE_S)

        response = streams.response
        if not response:
            error = streams.stderr.strip() or "Empty response from sandbox"
            return ExecutionResult(False, None, error, runtime_ms, timeout_ms=timeout_ms)

        try:
            loaded = cast(object, json.loads(response))
        except json.JSONDecodeError as exc:
            error = f"Invalid JSON from sandbox: {exc}"
            return ExecutionResult(False, None, error, runtime_ms, timeout_ms=timeout_ms)

        if not isinstance(loaded, dict):
            return ExecutionResult(
                False, None, "Invalid response type from sandbox", runtime_ms, timeout_ms=timeout_ms
            )
        data = cast(dict[str, object], loaded)

        success = bool(data.get("success"))
        error_value = data.get("error")
        runtime_value = data.get("runtime_ms")
        error = str(error_value) if error_value is not None else None
        if isinstance(runtime_value, (int, float)) and math.isfinite(runtime_value):
            runtime_ms = float(runtime_value)

        return ExecutionResult(
            success=success,
            result=data.get("result") if success else None,
            error=error,
            runtime_ms=runtime_ms,
            output=str(data.get("output") or ""),
            result_is_repr=bool(data.get("result_is_repr")),
            timeout_ms=timeout_ms,
        )

    def _kill(self, proc: subprocess.Popen[str], streams: _ChildStreams) -> None:
        proc.kill()
        proc.wait()
        streams.join(self.EXIT_GRACE_S)

    @staticmethod
    def encode_capabilities(capabilities: Mapping[str, object] | None) -> str:
        """Serialize caller capabilities for the child, failing fast if they cannot travel."""
        if not capabilities:
            return ""
        for name in capabilities:
            if not isinstance(name, str) or not name.isidentifier():
                raise CapabilityError(f"Capability name {name!r} is not a valid identifier")
        try:
            return protocol.encode_capabilities(dict(capabilities))
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            raise CapabilityError(f"Capabilities cannot be sent to the sandbox: {exc}") from exc

    def _limit_resources(self, timeout_ms: int):
        """Return a preexec_fn to enforce resource limits on Unix."""
        def _apply_limits():
            try:
                import resource
            except ImportError:
                return
            cpu_seconds = max(1, math.ceil(timeout_ms / 1000) + 1)
            memory_bytes = int(self.memory_limit_mb * 1024 * 1024)
            resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
            if hasattr(resource, "RLIMIT_AS"):
                resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
            elif hasattr(resource, "RLIMIT_DATA"):
                resource.setrlimit(resource.RLIMIT_DATA, (memory_bytes, memory_bytes))

        return _apply_limits
