"""Artifact management for batch jobs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from carpatch_core.schemas import PatchOutcome
from jobs.config import JobConfig, save_config


class ArtifactManager:
    """Manages job artifacts: config snapshot, outcomes, patched files and summary."""

    def __init__(self, config: JobConfig):
        self.config = config
        self.job_dir = Path(config.artifact_dir) / config.job_id
        self.patched_dir = self.job_dir / "patched"

        self._create_directory_structure()

    def _create_directory_structure(self) -> None:
        self.job_dir.mkdir(parents=True, exist_ok=True)
        self.patched_dir.mkdir(exist_ok=True)

    @property
    def config_path(self) -> Path:
        return self.job_dir / "config.yaml"

    @property
    def outcomes_path(self) -> Path:
        return self.job_dir / "outcomes.jsonl"

    @property
    def summary_path(self) -> Path:
        return self.job_dir / "summary.json"

    def snapshot_config(self) -> None:
        """Save a snapshot of the configuration for reproducibility."""
        save_config(self.config, self.config_path)

    def patched_path(self, identity: str, index: int) -> Path:
        # identities may be nested paths; flatten and prefix with the batch index
        name = identity.replace("\\", "/").strip("/").replace("/", "__") or "document"
        return self.patched_dir / f"{index:03d}_{name}"

    def save_outcome(self, index: int, outcome: PatchOutcome) -> None:
        entry = {
            "index": index,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **outcome.to_dict(),
        }
        with open(self.outcomes_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")

        if outcome.patches_applied:
            with open(self.patched_path(outcome.identity, index), "w", encoding="utf-8") as f:
                f.write(outcome.patched_text)

    def save_summary(self, summary: dict[str, Any]) -> None:
        with open(self.summary_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)

    def load_outcomes(self) -> list[PatchOutcome]:
        if not self.outcomes_path.exists():
            return []

        outcomes = []
        with open(self.outcomes_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    data = json.loads(line)
                    data.pop("index", None)
                    data.pop("timestamp", None)
                    outcomes.append(PatchOutcome.from_dict(data))
        return outcomes

    def load_summary(self) -> dict[str, Any] | None:
        if not self.summary_path.exists():
            return None
        with open(self.summary_path, "r", encoding="utf-8") as f:
            return json.load(f)
