"""CLI interface for scanning, patching and running documents."""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Optional

import typer

from carpatch_core.decoys import generate_decoys
from carpatch_core.documents import FileDocumentStore
from carpatch_core.errors import CapabilityError, LoadError
from carpatch_core.pipeline import PatchPipeline
from carpatch_core.schemas import PatchOutcome, PatchSpecification
from sandbox.executor import SandboxExecutor

from jobs.artifacts import ArtifactManager
from jobs.config import JobConfig, load_config
from jobs.runner import JobRunner

app = typer.Typer(help="Car(); patch engine CLI")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _pipeline(seed: Optional[int], timeout_ms: int = SandboxExecutor.DEFAULT_TIMEOUT_MS) -> PatchPipeline:
    rng = random.Random(seed) if seed is not None else random.Random()
    return PatchPipeline(FileDocumentStore(), rng=rng, timeout_ms=timeout_ms)


def _spec(patches: list[str], patch_files: list[Path], fake: bool, shuffle: bool) -> PatchSpecification:
    fragments = list(patches)
    for path in patch_files:
        fragments.append(path.read_text(encoding="utf-8").rstrip("\n"))
    return PatchSpecification(patches=fragments, add_fake_patches=fake, randomize_order=shuffle)


def _echo_errors(outcome: PatchOutcome) -> None:
    for error in outcome.errors:
        typer.secho(f"❌ [{error.kind.value}] {error.message}", fg=typer.colors.RED, err=True)


@app.command()
def scan(
    files: list[Path] = typer.Argument(..., help="Files to scan for Car(); markers"),
) -> None:
    """Report marker count and line numbers for each file."""
    pipeline = _pipeline(None)
    failed = False
    for path in files:
        try:
            result = pipeline.scan(str(path))
        except LoadError as e:
            typer.secho(f"❌ {path}: {e.message}", fg=typer.colors.RED, err=True)
            failed = True
            continue
        lines = ", ".join(str(line) for line in result.locations) or "-"
        typer.echo(f"{path}: {result.count} marker(s) at lines {lines}")
    if failed:
        raise typer.Exit(1)


@app.command()
def patch(
    file: Path = typer.Argument(..., help="File containing Car(); markers"),
    patches: list[str] = typer.Option([], "--patch", "-p", help="Inline patch fragment"),
    patch_files: list[Path] = typer.Option([], "--patch-file", "-f", help="File holding a patch fragment"),
    fake: bool = typer.Option(False, "--fake", help="Mix in decoy fragments"),
    shuffle: bool = typer.Option(False, "--shuffle", help="Shuffle the patch plan"),
    seed: Optional[int] = typer.Option(None, help="Random seed for decoys and shuffling"),
) -> None:
    """Print the patched text without executing it."""
    outcome = _pipeline(seed).load_and_patch(str(file), _spec(patches, patch_files, fake, shuffle))
    _echo_errors(outcome)
    typer.echo(outcome.patched_text)
    typer.secho(f"✅ {outcome.patches_applied} patch(es) applied", fg=typer.colors.GREEN, err=True)
    if outcome.patches_applied == 0 and outcome.errors:
        raise typer.Exit(1)


@app.command("exec")
def exec_(
    file: Path = typer.Argument(..., help="File containing Car(); markers"),
    patches: list[str] = typer.Option([], "--patch", "-p", help="Inline patch fragment"),
    patch_files: list[Path] = typer.Option([], "--patch-file", "-f", help="File holding a patch fragment"),
    fake: bool = typer.Option(False, "--fake", help="Mix in decoy fragments"),
    shuffle: bool = typer.Option(False, "--shuffle", help="Shuffle the patch plan"),
    seed: Optional[int] = typer.Option(None, help="Random seed for decoys and shuffling"),
    timeout_ms: int = typer.Option(SandboxExecutor.DEFAULT_TIMEOUT_MS, "--timeout-ms", min=1, help="Wall-clock limit"),
) -> None:
    """Patch a file and run it in the sandbox."""
    pipeline = _pipeline(seed, timeout_ms)
    outcome = pipeline.run_with_patches(str(file), _spec(patches, patch_files, fake, shuffle))
    if outcome.output:
        typer.echo(outcome.output, nl=False)
    _echo_errors(outcome)
    if outcome.errors:
        raise typer.Exit(1)
    typer.secho(f"✅ Result: {json.dumps(outcome.execution_result)}", fg=typer.colors.GREEN)


@app.command()
def run(
    config_path: str = typer.Argument(..., help="Path to job YAML config"),
    progress: bool = typer.Option(True, help="Show a progress bar"),
) -> None:
    """Run a batch job from a config file and write artifacts."""
    try:
        config = load_config(config_path)
        summary = JobRunner(config, show_progress=progress).run()
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except (ValueError, CapabilityError) as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    _echo_summary(summary)
    if summary["failed"]:
        raise typer.Exit(1)


@app.command()
def decoys(
    count: int = typer.Argument(..., help="Number of decoy fragments"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
) -> None:
    """Print freshly generated decoy fragments."""
    rng = random.Random(seed) if seed is not None else random.Random()
    for fragment in generate_decoys(count, rng):
        typer.echo(fragment)


@app.command()
def summary(
    job_id: str = typer.Argument(..., help="Job ID to summarize"),
    artifact_dir: str = typer.Option("artifacts", help="Artifacts directory"),
) -> None:
    """Show the stored summary of a finished job."""
    job_dir = Path(artifact_dir) / job_id
    if not job_dir.exists():
        typer.secho(f"❌ Job not found: {job_id}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    stored = ArtifactManager(JobConfig(job_id=job_id, artifact_dir=artifact_dir)).load_summary()
    if stored is None:
        typer.secho(f"❌ No summary found for job: {job_id}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    _echo_summary(stored)


def _echo_summary(summary: dict) -> None:
    color = typer.colors.GREEN if not summary.get("failed") else typer.colors.YELLOW
    typer.secho(f"\n📊 Job {summary.get('job_id')}:", fg=typer.colors.BLUE)
    typer.secho(
        f"   {summary.get('succeeded', 0)}/{summary.get('total', 0)} document(s) clean, "
        f"{summary.get('patches_applied', 0)} patch(es) applied",
        fg=color,
    )
    for kind, count in (summary.get("failures_by_kind") or {}).items():
        typer.echo(f"   - {kind}: {count}")


if __name__ == "__main__":
    app()
