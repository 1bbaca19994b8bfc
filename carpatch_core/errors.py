"""Failure taxonomy for the patch pipeline."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    LOAD = "load"
    NO_MARKERS = "no_markers"
    TIMEOUT = "timeout"
    EXECUTION = "execution"
    BATCH_ENTRY = "batch_entry"


class PatchError(Exception):
    """Base class for every failure the pipeline can record."""

    kind: FailureKind = FailureKind.EXECUTION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LoadError(PatchError):
    kind = FailureKind.LOAD


class DocumentNotFoundError(LoadError):
    def __init__(self, identity: str) -> None:
        super().__init__(f"Document not found: {identity}")
        self.identity = identity


class NoMarkersError(PatchError):
    kind = FailureKind.NO_MARKERS

    def __init__(self, message: str = "No Car(); markers found in file") -> None:
        super().__init__(message)


class ExecutionTimeout(PatchError):
    kind = FailureKind.TIMEOUT

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Execution timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ExecutionFault(PatchError):
    kind = FailureKind.EXECUTION


class BatchEntryError(PatchError):
    """Wraps whatever escaped the pipeline for a single batch member."""

    kind = FailureKind.BATCH_ENTRY

    def __init__(self, identity: str, cause: BaseException) -> None:
        super().__init__(f"Batch processing error: {cause}")
        self.identity = identity
        self.cause = cause


class CapabilityError(PatchError, ValueError):
    """Raised before execution when capabilities cannot be shipped to the sandbox."""

    kind = FailureKind.EXECUTION
