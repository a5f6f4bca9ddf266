"""Run command - the whole release pipeline in one go."""

from __future__ import annotations

import typer

from shiptag.cli.commands._helpers import emit_outputs, exit_pipeline_error, resolve_changed_paths
from shiptag.cli.context import build_context
from shiptag.output.console import ConsoleProtocol, Style
from shiptag.services.release.model import PipelineReport
from shiptag.services.release.pipeline import PipelineDeps, PipelineRequest, run_pipeline

_STATUS_STYLE = {
    "ok": Style.SUCCESS,
    "skipped": Style.DIM,
    "failed": Style.ERROR,
}


def _print_summary(report: PipelineReport, console: ConsoleProtocol) -> None:
    console.header("summary")
    for outcome in report.stages:
        line = f"{outcome.stage:<8} {outcome.status}"
        if outcome.detail:
            line += f"  {outcome.detail}"
        console.print(line, _STATUS_STYLE[outcome.status])


def run(
    changed: list[str] | None = typer.Option(
        None, "--changed", help="Path changed by the triggering event (repeatable)"
    ),
    base: str | None = typer.Option(None, "--base", help="Diff base revision"),
    head: str | None = typer.Option(None, "--head", help="Diff head revision (default: HEAD)"),
    run_id: str | None = typer.Option(None, "--run-id", help="Run identifier (default: random)"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="No tag push, publish to an in-memory release"
    ),
) -> None:
    """Watch, tag, build, collect and publish."""
    ctx = build_context()
    paths = resolve_changed_paths(ctx, changed=changed, base=base, head=head)

    request = PipelineRequest(
        root=ctx.root,
        config=ctx.config,
        changed_paths=paths,
        dry_run=dry_run,
        run_id=run_id,
    )
    deps = PipelineDeps.for_project(ctx.root, ctx.config, ctx.console, dry_run=dry_run)
    report = run_pipeline(request, deps)

    _print_summary(report, ctx.console)
    if report.tag is not None:
        emit_outputs(
            {
                "tag_name": report.tag.tag_name,
                "tag_exists": "true" if report.tag.tag_exists else "false",
            }
        )
    if report.error is not None:
        exit_pipeline_error(report.error, ctx)
