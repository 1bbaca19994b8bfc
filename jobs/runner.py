"""Job runner wiring configuration, pipeline and artifacts together."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

from carpatch_core.batch import BatchCoordinator, OutputSink
from carpatch_core.documents import FileDocumentStore
from carpatch_core.pipeline import PatchPipeline
from sandbox.executor import SandboxExecutor

from jobs.artifacts import ArtifactManager
from jobs.config import JobConfig
from jobs.failure_taxonomy import summarize_outcomes

logger = logging.getLogger(__name__)


class JobRunner:
    def __init__(
        self,
        config: JobConfig,
        output_sink: OutputSink | None = None,
        show_progress: bool = True,
    ):
        self.config = config
        self.output_sink = output_sink
        self.show_progress = show_progress
        self.artifacts: ArtifactManager | None = None

    def build_pipeline(self) -> PatchPipeline:
        rng = random.Random(self.config.seed) if self.config.seed is not None else random.Random()
        return PatchPipeline(
            store=FileDocumentStore(self.config.base_dir),
            executor=SandboxExecutor(memory_limit_mb=self.config.memory_limit_mb),
            rng=rng,
            timeout_ms=self.config.timeout_ms,
        )

    def run(self) -> dict[str, Any]:
        """Run every configured document and return the job summary."""
        spec = self.config.patch_specification()
        self.artifacts = ArtifactManager(self.config)
        self.artifacts.snapshot_config()
        if self.artifacts.outcomes_path.exists():
            self.artifacts.outcomes_path.unlink()

        logger.info(
            f"Starting job {self.config.job_id}: {len(self.config.documents)} document(s), "
            f"{len(spec.patches)} patch(es)"
        )

        coordinator = BatchCoordinator(
            self.build_pipeline(),
            output_sink=self.output_sink,
            show_progress=self.show_progress,
        )
        start = time.perf_counter()
        outcomes = coordinator.batch_process(
            self.config.documents,
            spec,
            self.config.capabilities or None,
            execute=self.config.execute,
        )
        elapsed_ms = (time.perf_counter() - start) * 1000

        for index, identity in enumerate(outcomes):
            self.artifacts.save_outcome(index, outcomes[identity])

        summary = {
            "job_id": self.config.job_id,
            "status": "completed",
            "elapsed_ms": elapsed_ms,
            **summarize_outcomes(outcomes),
        }
        self.artifacts.save_summary(summary)
        return summary
