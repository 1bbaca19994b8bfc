"""Job configuration with YAML support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field

from carpatch_core.schemas import BaseSchema, PatchSpecification


class JobConfig(BaseSchema):
    """Everything needed to run one batch of documents through the pipeline."""

    job_id: str
    documents: list[str] = Field(default_factory=list)
    base_dir: str | None = None

    # Inline fragments come first, then the contents of patch_files in order
    patches: list[str] = Field(default_factory=list)
    patch_files: list[str] = Field(default_factory=list)

    randomize_order: bool = False
    add_fake_patches: bool = False
    preserve_original: bool = True

    execute: bool = True
    timeout_ms: int = Field(default=5000, gt=0)
    memory_limit_mb: int = Field(default=256, gt=0)
    seed: int | None = None

    # Plain data only; it is pickled into the sandbox child
    capabilities: dict[str, Any] = Field(default_factory=dict)

    artifact_dir: str = "artifacts"

    def resolve(self, name: str) -> Path:
        path = Path(name)
        if self.base_dir and not path.is_absolute():
            return Path(self.base_dir) / path
        return path

    def patch_specification(self) -> PatchSpecification:
        fragments = list(self.patches)
        for name in self.patch_files:
            with open(self.resolve(name), "r", encoding="utf-8") as f:
                fragments.append(f.read().rstrip("\n"))
        return PatchSpecification(
            patches=fragments,
            randomize_order=self.randomize_order,
            add_fake_patches=self.add_fake_patches,
            preserve_original=self.preserve_original,
        )


def load_config(yaml_path: str | Path) -> JobConfig:
    """Load job configuration from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        JobConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or missing required fields
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    try:
        return JobConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: JobConfig, yaml_path: str | Path) -> None:
    """Save job configuration to YAML file for reproducibility."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
