"""Failure classification and batch summaries."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum

from carpatch_core.errors import FailureKind
from carpatch_core.schemas import PatchOutcome


class FaultType(str, Enum):
    TIMEOUT = "timeout"
    IMPORT_BLOCKED = "import_blocked"
    POLICY_BLOCKED = "policy_blocked"
    SYNTAX_ERROR = "syntax_error"
    NAME_ERROR = "name_error"
    RUNTIME_ERROR = "runtime_error"
    OTHER = "other"


class FailureAnalyzer:
    def __init__(self):
        self.failures: dict[FailureKind, int] = {kind: 0 for kind in FailureKind}
        self.faults: dict[FaultType, int] = {ft: 0 for ft in FaultType}

    def classify_fault(self, error_msg: str) -> FaultType:
        error_lower = error_msg.lower()

        if 'timeout' in error_lower or 'timed out' in error_lower:
            return FaultType.TIMEOUT
        elif 'import' in error_lower and ('blocked' in error_lower or 'not allowlisted' in error_lower):
            return FaultType.IMPORT_BLOCKED
        elif 'syntaxerror' in error_lower or 'indentationerror' in error_lower:
            return FaultType.SYNTAX_ERROR
        elif 'nameerror' in error_lower:
            return FaultType.NAME_ERROR
        elif 'sandbox policy' in error_lower:
            return FaultType.POLICY_BLOCKED
        elif any(err in error_lower for err in ['error', 'exception', 'failed']):
            return FaultType.RUNTIME_ERROR
        else:
            return FaultType.OTHER

    def record_outcome(self, outcome: PatchOutcome) -> None:
        for error in outcome.errors:
            self.failures[error.kind] += 1
            if error.kind in (FailureKind.EXECUTION, FailureKind.TIMEOUT):
                self.faults[self.classify_fault(error.message)] += 1

    def get_failure_stats(self) -> dict[str, int]:
        return {kind.value: count for kind, count in self.failures.items() if count}

    def get_top_faults(self, n: int = 5) -> list[tuple[str, int]]:
        sorted_faults = sorted(
            ((ft, count) for ft, count in self.faults.items() if count),
            key=lambda x: x[1],
            reverse=True
        )
        return [(ft.value, count) for ft, count in sorted_faults[:n]]


def summarize_outcomes(outcomes: Mapping[str, PatchOutcome] | Iterable[PatchOutcome]) -> dict[str, object]:
    """Aggregate success/failure counts across a batch."""
    if isinstance(outcomes, Mapping):
        outcomes = outcomes.values()
    outcomes = list(outcomes)

    analyzer = FailureAnalyzer()
    for outcome in outcomes:
        analyzer.record_outcome(outcome)

    succeeded = sum(1 for outcome in outcomes if outcome.ok)
    return {
        "total": len(outcomes),
        "succeeded": succeeded,
        "failed": len(outcomes) - succeeded,
        "patches_applied": sum(outcome.patches_applied for outcome in outcomes),
        "failures_by_kind": analyzer.get_failure_stats(),
        "top_faults": analyzer.get_top_faults(),
    }
