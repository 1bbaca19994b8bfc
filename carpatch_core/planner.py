"""Patch plan construction."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field

from .decoys import generate_decoys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchPlan:
    """Fragments in the order they will be handed to markers."""

    fragments: tuple[str, ...] = field(default_factory=tuple)
    decoy_count: int = 0

    def __len__(self) -> int:
        return len(self.fragments)


def build_plan(
    marker_count: int,
    fragments: Sequence[str],
    *,
    randomize_order: bool = False,
    add_fake_patches: bool = False,
    rng: random.Random | None = None,
) -> PatchPlan:
    """Combine real fragments with optional decoys and optionally shuffle them.

    Decoys are appended after the real fragments, one per marker. Shuffling
    permutes the combined list exactly once.
    """
    rng = rng or random.Random()
    planned = list(fragments)
    decoy_count = 0

    if add_fake_patches:
        decoys = generate_decoys(marker_count, rng)
        decoy_count = len(decoys)
        planned.extend(decoys)

    if randomize_order:
        rng.shuffle(planned)

    logger.debug(
        f"Planned {len(planned)} fragment(s) for {marker_count} marker(s) "
        f"({decoy_count} decoy, shuffled={randomize_order})"
    )
    return PatchPlan(fragments=tuple(planned), decoy_count=decoy_count)
