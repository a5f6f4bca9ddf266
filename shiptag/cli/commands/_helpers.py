"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer

from shiptag.core.errors import ErrorCode
from shiptag.core.result import Err
from shiptag.git.repository import Repository
from shiptag.output.errors import pipeline_error_exit_code, print_pipeline_error
from shiptag.services.release.errors import PipelineError

if TYPE_CHECKING:
    from shiptag.cli.context import CLIContext


def exit_pipeline_error(error: PipelineError, ctx: CLIContext) -> NoReturn:
    """Print error (with hint) and exit with its mapped code."""
    print_pipeline_error(error, ctx.console)
    raise typer.Exit(code=pipeline_error_exit_code(error))


def resolve_changed_paths(
    ctx: CLIContext,
    *,
    changed: list[str] | None,
    base: str | None,
    head: str | None,
) -> tuple[str, ...] | None:
    """The change event's paths, or None when no event was given."""
    if changed:
        return tuple(changed)
    if base is None:
        return None

    head = head or "HEAD"
    diff = Repository(ctx.root).changed_paths(base, head)
    if isinstance(diff, Err):
        ctx.console.error(f"cannot diff {base}..{head}: {diff.error.message}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return diff.value


def emit_outputs(outputs: dict[str, str]) -> None:
    """Print ``key=value`` lines, and append them to $GITHUB_OUTPUT when set."""
    lines = [f"{key}={value}" for key, value in outputs.items()]
    for line in lines:
        typer.echo(line)

    target = os.environ.get("GITHUB_OUTPUT")
    if target:
        with Path(target).open("a", encoding="utf-8") as handle:
            handle.write("".join(f"{line}\n" for line in lines))
