"""Error presentation utilities.

Centralized error formatting and exit code mapping for the pipeline errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shiptag.core.errors import ErrorCode
from shiptag.output.console import Style
from shiptag.services.release.errors import (
    BuildError,
    CollectError,
    ExtractionError,
    PipelineError,
    PlanError,
    PublishError,
    PushError,
    StagingError,
    TagQueryError,
)

if TYPE_CHECKING:
    from shiptag.output.console import ConsoleProtocol

__all__ = ["print_pipeline_error", "pipeline_error_exit_code"]


def _hint(console: ConsoleProtocol, hint: str | None) -> None:
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with its hint and any per-job details."""
    match error:
        case ExtractionError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case TagQueryError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case PushError(tag=tag, message=message, hint=hint) as e:
            console.error(message)
            _hint(console, hint)
            if e.local_tag_created and not e.local_tag_removed:
                console.print(f"local tag {tag} left in place; the next run pushes it", Style.DIM)
        case PlanError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case BuildError(artifact=artifact, message=message, hint=hint):
            console.error(f"{artifact}: {message}")
            _hint(console, hint)
        case StagingError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case CollectError(message=message, failed=failed, missing=missing, unexpected=unexpected, hint=hint):
            console.error(message)
            for job_error in failed:
                console.print(f"  {job_error.artifact}: {job_error.message}", Style.DIM)
            if missing:
                console.print(f"  missing: {', '.join(missing)}", Style.DIM)
            if unexpected:
                console.print(f"  unexpected: {', '.join(unexpected)}", Style.DIM)
            _hint(console, hint)
        case PublishError(release_id=release_id, message=message, hint=hint):
            console.error(f"{release_id}: {message}")
            _hint(console, hint)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case ExtractionError() | PlanError():
            return int(ErrorCode.USER_ERROR)
        case TagQueryError() | PushError():
            return int(ErrorCode.NETWORK_ERROR)
        case BuildError(kind="tool_missing") | PublishError(kind="gh_missing"):
            return int(ErrorCode.ENV_ERROR)
        case CollectError(failed=failed) if any(e.kind == "tool_missing" for e in failed):
            return int(ErrorCode.ENV_ERROR)
        case BuildError() | CollectError():
            return int(ErrorCode.BUILD_ERROR)
        case StagingError():
            return int(ErrorCode.IO_ERROR)
        case PublishError():
            return int(ErrorCode.PUBLISH_ERROR)
