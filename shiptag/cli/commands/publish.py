"""Publish command - upsert downloaded artifacts into the release."""

from __future__ import annotations

from pathlib import Path

import typer

from shiptag.cli.commands._helpers import exit_pipeline_error
from shiptag.cli.context import build_context
from shiptag.core.result import Err
from shiptag.output.console import Style
from shiptag.services.release.collector import load_artifact_dir
from shiptag.services.release.pipeline import PipelineDeps, publish_staged


def publish(
    directory: Path = typer.Argument(..., help="Directory with one artifact per entry"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Publish to an in-memory release instead of GitHub"
    ),
) -> None:
    """Create or update the release with every artifact in DIRECTORY."""
    ctx = build_context()

    artifacts = load_artifact_dir(directory)
    if isinstance(artifacts, Err):
        exit_pipeline_error(artifacts.error, ctx)

    deps = PipelineDeps.for_project(ctx.root, ctx.config, ctx.console, dry_run=dry_run)
    published = publish_staged(
        root=ctx.root,
        config=ctx.config,
        artifacts=artifacts.value,
        deps=deps,
    )
    if isinstance(published, Err):
        exit_pipeline_error(published.error, ctx)

    for asset in published.value.assets:
        ctx.console.print(f"  {asset.name} ({asset.size} bytes)", Style.DIM)
