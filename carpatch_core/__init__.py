"""
Car(); Patch Core Module

Marker scanning, patch planning and application for the Car(); patch engine.

This module implements the text side of the engine:
- Marker scanning (lines consisting solely of ``Car();``)
- Decoy fragment generation
- Patch plan construction with optional decoys and shuffling
- Indentation-preserving substitution
- Per-document pipeline and batch coordination (``pipeline``, ``batch``)
"""

__version__ = "0.1.0"

from .applicator import AppliedPatch, apply_plan
from .decoys import generate_decoys
from .errors import (
    BatchEntryError,
    CapabilityError,
    DocumentNotFoundError,
    ExecutionFault,
    ExecutionTimeout,
    FailureKind,
    LoadError,
    NoMarkersError,
    PatchError,
)
from .markers import MARKER_TOKEN, Marker, ScanResult, scan_markers
from .planner import PatchPlan, build_plan
from .schemas import ErrorRecord, PatchOutcome, PatchSpecification

__all__ = [
    "AppliedPatch",
    "BatchEntryError",
    "CapabilityError",
    "DocumentNotFoundError",
    "ErrorRecord",
    "ExecutionFault",
    "ExecutionTimeout",
    "FailureKind",
    "LoadError",
    "MARKER_TOKEN",
    "Marker",
    "NoMarkersError",
    "PatchError",
    "PatchOutcome",
    "PatchPlan",
    "PatchSpecification",
    "ScanResult",
    "apply_plan",
    "build_plan",
    "generate_decoys",
    "scan_markers",
]
