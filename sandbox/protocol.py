"""
Child process protocol for sandbox execution.

The parent writes one JSON request to stdin. The child answers on its original
stdout with a ``READY_LINE`` once setup is done, then one JSON response. The
``print`` capability writes into a buffer returned in the response; anything
else written to ``sys.stdout`` goes to stderr.
"""

from __future__ import annotations

import ast
import base64
import io
import json
import os
import pickle
import sys
import time
from typing import TextIO, cast

from sandbox import policy
from sandbox.capabilities import Timers, build_default_capabilities

CHILD_TEMPLATE = """
from sandbox.protocol import child_main
child_main()
""".strip()

SANDBOX_FILENAME = "<patched>"

# First line on the response channel, sent once setup is done and evaluation starts
READY_LINE = "ready"


def encode_capabilities(capabilities: dict[str, object]) -> str:
    return base64.b64encode(pickle.dumps(capabilities)).decode("ascii")


def decode_capabilities(encoded: str) -> dict[str, object]:
    if not encoded:
        return {}
    return cast(dict[str, object], pickle.loads(base64.b64decode(encoded)))


def _load_payload() -> dict[str, object]:
    raw = sys.stdin.read()
    if not raw:
        return {}
    try:
        return cast(dict[str, object], json.loads(raw))
    except json.JSONDecodeError:
        return {}


def _format_error(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def compile_program(code: str) -> tuple[object, object | None]:
    """Compile ``code`` into a body and, if it ends in an expression, that expression."""
    tree = ast.parse(code, filename=SANDBOX_FILENAME, mode="exec")
    tail = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = cast(ast.Expr, tree.body.pop())
        tail = compile(ast.Expression(body=last.value), SANDBOX_FILENAME, "eval")
    body = compile(tree, SANDBOX_FILENAME, "exec")
    return body, tail


def to_wire(value: object) -> tuple[object, bool]:
    """Return ``(value, False)`` when JSON can carry it, else ``(repr(value), True)``."""
    try:
        json.dumps(value, allow_nan=True)
    except (TypeError, ValueError):
        return repr(value), True
    return value, False


def _open_response_channel() -> TextIO:
    """Move the response pipe off fd 1 so nothing the program runs can write to it.

    After this call fd 1 points at stderr; stray writes to ``sys.stdout`` end up
    there instead of corrupting the response.
    """
    sys.stdout.flush()
    channel = os.fdopen(os.dup(1), "w", encoding="utf-8")
    os.dup2(2, 1)
    return channel


def child_main() -> None:
    """Entry point for the sandbox child process."""
    channel = _open_response_channel()
    payload = _load_payload()
    code = str(payload.get("code", ""))
    allowed_modules = cast(list[str], payload.get("allowed_modules", list(policy.ALLOWED_MODULES)))
    output = io.StringIO()
    timers = Timers()
    ready = False

    def signal_ready() -> None:
        nonlocal ready
        if not ready:
            channel.write(READY_LINE + "\n")
            channel.flush()
            ready = True

    start = time.perf_counter()
    response: dict[str, object]
    try:
        capabilities = build_default_capabilities(timers, output)
        capabilities.update(decode_capabilities(str(payload.get("capabilities", ""))))

        namespace: dict[str, object] = {
            "__name__": "__sandbox__",
            "__builtins__": policy.build_restricted_builtins(
                allowed_modules=allowed_modules,
                blocked_modules=policy.BLOCKED_MODULES,
            ),
        }
        namespace.update(capabilities)

        result: object = None
        body, tail = compile_program(code)

        signal_ready()
        start = time.perf_counter()
        exec(body, namespace)
        if tail is not None:
            result = eval(tail, namespace)

        wire_result, is_repr = to_wire(result)
        response = {
            "success": True,
            "result": wire_result,
            "result_is_repr": is_repr,
            "error": None,
        }
    except BaseException as exc:  # noqa: BLE001 - capture all child errors
        response = {
            "success": False,
            "result": None,
            "result_is_repr": False,
            "error": _format_error(exc),
        }
    finally:
        timers.cancel_all()

    # callbacks already running may keep writing to the buffer; snapshot it now
    response["output"] = output.getvalue()
    response["runtime_ms"] = (time.perf_counter() - start) * 1000
    signal_ready()
    _ = channel.write(json.dumps(response))
    channel.close()


if __name__ == "__main__":
    child_main()
