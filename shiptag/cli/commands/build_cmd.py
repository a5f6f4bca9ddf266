"""Build command - fan out the per-target builds for one commit."""

from __future__ import annotations

import typer

from shiptag.cli.commands._helpers import exit_pipeline_error
from shiptag.cli.context import build_context
from shiptag.core.errors import ErrorCode
from shiptag.core.result import Err
from shiptag.git.repository import Repository
from shiptag.services.release.pipeline import PipelineDeps, build_artifacts, publish_staged
from shiptag.services.release.staging import new_run_id


def build(
    commit: str | None = typer.Option(
        None, "--commit", help="Commit to build (default: HEAD)", show_default=False
    ),
    publish: bool = typer.Option(False, "--publish", help="Publish the artifacts afterwards"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Publish to an in-memory release instead of GitHub"
    ),
) -> None:
    """Build every configured target and collect the artifacts."""
    ctx = build_context()
    deps = PipelineDeps.for_project(ctx.root, ctx.config, ctx.console, dry_run=dry_run)

    if commit is None:
        head = Repository(ctx.root).head_sha()
        if isinstance(head, Err):
            ctx.console.error(f"cannot resolve HEAD: {head.error.message}")
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        commit = head.value

    built, _ = build_artifacts(
        root=ctx.root,
        config=ctx.config,
        commit=commit,
        run_id=new_run_id(),
        deps=deps,
    )
    if isinstance(built, Err):
        exit_pipeline_error(built.error, ctx)

    output = built.value
    if not publish:
        ctx.console.success(f"{len(output.artifacts)} artifacts staged in {output.staging.run_dir}")
        return

    published = publish_staged(root=ctx.root, config=ctx.config, artifacts=output.artifacts, deps=deps)
    if isinstance(published, Err):
        ctx.console.print(f"staged artifacts kept in {output.staging.run_dir}")
        exit_pipeline_error(published.error, ctx)
    output.staging.discard()
