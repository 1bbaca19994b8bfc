"""Decoy fragment generation.

Decoys are superficial Python statements that can be mixed into a patch plan so
that the patched output does not reveal which substitutions matter. Every draw
instantiates fresh random tokens, so two batches of decoys are never identical.
"""

from __future__ import annotations

import random
from collections.abc import Callable


def _hex(rng: random.Random, n_bytes: int) -> str:
    return f"{rng.getrandbits(8 * n_bytes):0{2 * n_bytes}x}"


def _logging_call(rng: random.Random) -> str:
    return f'print("Fake patch {_hex(rng, 4)}")'


def _variable(rng: random.Random) -> str:
    return f'fake_var_{_hex(rng, 2)} = "{_hex(rng, 8)}"'


def _gated_conditional(rng: random.Random) -> str:
    return f'if {rng.random()!r} > 0.5:\n    print("Fake condition")'


def _deferred_timer(rng: random.Random) -> str:
    return f'set_timeout(lambda: "{_hex(rng, 4)}", {rng.randrange(1000)})'


def _inert_object(rng: random.Random) -> str:
    return f'fake_obj = {{"id": "{_hex(rng, 4)}", "value": {rng.random()!r}}}'


DECOY_TEMPLATES: tuple[Callable[[random.Random], str], ...] = (
    _logging_call,
    _variable,
    _gated_conditional,
    _deferred_timer,
    _inert_object,
)


def generate_decoys(count: int, rng: random.Random | None = None) -> list[str]:
    """Draw ``count`` decoys with replacement from the template pool."""
    rng = rng or random.Random()
    return [rng.choice(DECOY_TEMPLATES)(rng) for _ in range(max(0, count))]
