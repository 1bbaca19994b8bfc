"""Per-document pipeline: load, scan, plan, apply, execute."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping

from sandbox.executor import SandboxExecutor

from .applicator import apply_plan
from .documents import DocumentStore, SourceDocument, load_document
from .errors import LoadError, NoMarkersError, PatchError
from .markers import ScanResult, scan_markers
from .planner import build_plan
from .schemas import ErrorRecord, PatchOutcome, PatchSpecification

logger = logging.getLogger(__name__)


class PatchPipeline:
    """
    Runs one document at a time through the patch pipeline.

    Every stage failure is recorded in the returned ``PatchOutcome``. Only setup
    problems (an invalid specification, capabilities that cannot reach the
    sandbox) are raised.
    """

    def __init__(
        self,
        store: DocumentStore,
        executor: SandboxExecutor | None = None,
        rng: random.Random | None = None,
        timeout_ms: int = SandboxExecutor.DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.store = store
        self.executor = executor or SandboxExecutor()
        self.rng = rng or random.Random()
        self.timeout_ms = timeout_ms

    def scan(self, identity: str) -> ScanResult:
        """Scan a stored document. Load failures propagate as LoadError."""
        return scan_markers(self._load(identity).text)

    def load_and_patch(
        self, identity: str, spec: PatchSpecification | Mapping[str, object]
    ) -> PatchOutcome:
        """Patch a document in memory without executing it."""
        spec = PatchSpecification.coerce(spec)
        try:
            document = self._load(identity)
        except LoadError as exc:
            logger.warning(f"{identity}: {exc.message}")
            return PatchOutcome(
                identity=identity,
                errors=[ErrorRecord(kind=exc.kind, message=f"Failed to load file: {exc.message}")],
            )
        return self._patch(document, spec)

    def run_with_patches(
        self,
        identity: str,
        spec: PatchSpecification | Mapping[str, object],
        capabilities: Mapping[str, object] | None = None,
    ) -> PatchOutcome:
        """Patch a document and evaluate the result in the sandbox."""
        spec = PatchSpecification.coerce(spec)
        # fail fast on capabilities before any document is touched
        self.executor.encode_capabilities(capabilities)

        outcome = self.load_and_patch(identity, spec)
        if outcome.errors:
            return outcome

        result = self.executor.execute(outcome.patched_text, capabilities, self.timeout_ms)
        outcome.output = result.output
        try:
            outcome.execution_result = result.unwrap()
            outcome.result_is_repr = result.result_is_repr
        except PatchError as exc:
            logger.warning(f"{identity}: {exc.message}")
            outcome.errors.append(
                ErrorRecord(kind=exc.kind, message=f"Execution error: {exc.message}")
            )
        return outcome

    def _load(self, identity: str) -> SourceDocument:
        try:
            return load_document(self.store, identity)
        except LoadError:
            raise
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(str(exc)) from exc

    def _patch(self, document: SourceDocument, spec: PatchSpecification) -> PatchOutcome:
        original = document.text if spec.preserve_original else None
        scan = scan_markers(document.text)

        if scan.count == 0:
            error = NoMarkersError()
            logger.info(f"{document.identity}: {error.message}")
            return PatchOutcome(
                identity=document.identity,
                original_text=original,
                patched_text=document.text,
                patches_applied=0,
                errors=[ErrorRecord.from_exception(error)],
            )

        plan = build_plan(
            scan.count,
            spec.patches,
            randomize_order=spec.randomize_order,
            add_fake_patches=spec.add_fake_patches,
            rng=self.rng,
        )
        applied = apply_plan(document.text, plan)
        logger.debug(
            f"{document.identity}: applied {applied.applied_count}/{scan.count} marker(s) "
            f"at lines {scan.locations}"
        )
        return PatchOutcome(
            identity=document.identity,
            original_text=original,
            patched_text=applied.patched_text,
            patches_applied=applied.applied_count,
        )

