"""
Marker scanning.

A marker is a line whose stripped content is exactly the reserved token.
Anything else on the line (a trailing comment, a second statement) disqualifies it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MARKER_TOKEN = "Car();"


@dataclass(frozen=True)
class Marker:
    line: int  # 1-based
    indent: str


@dataclass(frozen=True)
class ScanResult:
    markers: tuple[Marker, ...] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.markers)

    @property
    def locations(self) -> list[int]:
        return [marker.line for marker in self.markers]

    def to_dict(self) -> dict[str, object]:
        return {"count": self.count, "locations": self.locations}


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    """Split on normalized newlines, keeping a trailing empty line if present."""
    return normalize_newlines(text).split("\n")


def leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def is_marker_line(line: str) -> bool:
    return line.strip() == MARKER_TOKEN


def scan_markers(text: str) -> ScanResult:
    markers = tuple(
        Marker(line=index + 1, indent=leading_whitespace(line))
        for index, line in enumerate(split_lines(text))
        if is_marker_line(line)
    )
    return ScanResult(markers=markers)
