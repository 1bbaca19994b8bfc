"""Batch coordination across many documents."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from tqdm import tqdm

from .errors import BatchEntryError
from .pipeline import PatchPipeline
from .schemas import ErrorRecord, PatchOutcome, PatchSpecification

logger = logging.getLogger(__name__)

OutputSink = Callable[[str, str], None]


class BatchCoordinator:
    """
    Runs the pipeline independently for each identity.

    Entries are processed one after another so that execution output reaches
    ``output_sink`` in identity order. A failure in one entry is recorded in its
    own outcome and never affects the others.
    """

    def __init__(
        self,
        pipeline: PatchPipeline,
        output_sink: OutputSink | None = None,
        show_progress: bool = False,
    ) -> None:
        self.pipeline = pipeline
        self.output_sink = output_sink
        self.show_progress = show_progress

    def batch_process(
        self,
        identities: Iterable[str],
        spec: PatchSpecification | Mapping[str, object],
        capabilities: Mapping[str, object] | None = None,
        execute: bool = True,
    ) -> dict[str, PatchOutcome]:
        spec = PatchSpecification.coerce(spec)
        self.pipeline.executor.encode_capabilities(capabilities)
        identities = list(identities)

        results: dict[str, PatchOutcome] = {}
        for identity in tqdm(identities, desc="Patching", disable=not self.show_progress):
            outcome = self._process_one(identity, spec, capabilities, execute)
            results[identity] = outcome
            if self.output_sink is not None and outcome.output:
                self.output_sink(identity, outcome.output)

        failed = sum(1 for outcome in results.values() if not outcome.ok)
        logger.info(f"Batch finished: {len(results) - failed} ok, {failed} with errors")
        return results

    def _process_one(
        self,
        identity: str,
        spec: PatchSpecification,
        capabilities: Mapping[str, object] | None,
        execute: bool,
    ) -> PatchOutcome:
        try:
            if execute:
                return self.pipeline.run_with_patches(identity, spec, capabilities)
            return self.pipeline.load_and_patch(identity, spec)
        except Exception as exc:
            error = BatchEntryError(identity, exc)
            logger.warning(f"{identity}: {error.message}")
            return PatchOutcome(identity=identity, errors=[ErrorRecord.from_exception(error)])
