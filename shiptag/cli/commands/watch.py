"""Watch command - detect a version bump and create its tag."""

from __future__ import annotations

import typer

from shiptag.cli.commands._helpers import emit_outputs, exit_pipeline_error, resolve_changed_paths
from shiptag.cli.context import build_context
from shiptag.core.result import Err
from shiptag.services.release.manifest import manifest_changed, read_manifest
from shiptag.services.release.tagging import GitTagNamespace, ensure_tag


def watch(
    changed: list[str] | None = typer.Option(
        None, "--changed", help="Path changed by the triggering event (repeatable)"
    ),
    base: str | None = typer.Option(None, "--base", help="Diff base revision"),
    head: str | None = typer.Option(None, "--head", help="Diff head revision (default: HEAD)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Tag v<version> if the manifest changed and the tag is new."""
    ctx = build_context()
    config = ctx.config
    manifest = config.project.manifest

    paths = resolve_changed_paths(ctx, changed=changed, base=base, head=head)
    if paths is not None and not manifest_changed(paths, manifest):
        ctx.console.info(f"{manifest} not changed, nothing to tag")
        emit_outputs({"manifest_changed": "false"})
        return

    found = read_manifest(ctx.root / manifest, prefix=config.tagging.prefix)
    if isinstance(found, Err):
        exit_pipeline_error(found.error, ctx)
    ctx.console.print(f"Extracted version: {found.value.version}")

    tagged = ensure_tag(
        found.value,
        namespace=GitTagNamespace.at(ctx.root, remote=config.project.remote),
        console=ctx.console,
        message_template=config.tagging.message,
        rollback_on_push_failure=config.tagging.rollback_on_push_failure,
        dry_run=dry_run,
    )
    if isinstance(tagged, Err):
        exit_pipeline_error(tagged.error, ctx)

    outcome = tagged.value
    emit_outputs(
        {
            "tag_name": outcome.tag_name,
            "tag_exists": "true" if outcome.tag_exists else "false",
        }
    )
