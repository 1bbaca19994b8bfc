"""
Indentation-preserving substitution of plan fragments into marker lines.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .markers import is_marker_line, leading_whitespace, split_lines
from .planner import PatchPlan


@dataclass(frozen=True)
class AppliedPatch:
    patched_text: str
    applied_count: int


def indent_fragment(fragment: str, indent: str) -> str:
    """Prefix every non-blank line of ``fragment`` with ``indent``."""
    return "\n".join(
        indent + line if line.strip() else line
        for line in split_lines(fragment)
    )


def apply_fragments(text: str, fragments: Sequence[str]) -> AppliedPatch:
    output: list[str] = []
    cursor = 0

    for line in split_lines(text):
        if is_marker_line(line) and cursor < len(fragments):
            output.append(indent_fragment(fragments[cursor], leading_whitespace(line)))
            cursor += 1
        else:
            output.append(line)

    return AppliedPatch(patched_text="\n".join(output), applied_count=cursor)


def apply_plan(text: str, plan: PatchPlan) -> AppliedPatch:
    """Hand the i-th plan fragment to the i-th marker; leftover markers stay verbatim."""
    return apply_fragments(text, plan.fragments)
