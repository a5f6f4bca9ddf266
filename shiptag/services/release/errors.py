"""Error payloads for each pipeline stage.

All of them are returned inside ``Err(...)``. Each carries ``message`` and an
optional ``hint`` so the CLI can render any of them the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

BuildErrorKind = Literal[
    "tool_missing",
    "checkout_failed",
    "compile_failed",
    "output_missing",
    "staging_failed",
    "crashed",
]

PublishErrorKind = Literal[
    "gh_missing",
    "query_failed",
    "create_failed",
    "upload_failed",
    "update_failed",
    "locked",
    "invalid_input",
]


@dataclass(frozen=True, slots=True)
class ExtractionError:
    """The manifest has no usable ``version = "..."`` line."""

    manifest: Path
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class TagQueryError:
    """Listing the remote tag namespace failed; nothing was created."""

    tag: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PushError:
    """Creating or pushing the tag failed.

    ``local_tag_created`` tells whether the tag reached the local repository;
    ``local_tag_removed`` whether it was rolled back afterwards.
    """

    tag: str
    message: str
    hint: str | None = None
    local_tag_created: bool = False
    local_tag_removed: bool = False


@dataclass(frozen=True, slots=True)
class PlanError:
    """The target list cannot produce a valid set of build jobs."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BuildError:
    """One platform's job failed; ``artifact`` names the job."""

    artifact: str
    kind: BuildErrorKind
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class StagingError:
    name: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class CollectError:
    """The barrier saw a failed job or an incomplete artifact set."""

    message: str
    failed: tuple[BuildError, ...] = ()
    missing: tuple[str, ...] = ()
    unexpected: tuple[str, ...] = ()
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PublishError:
    release_id: str
    kind: PublishErrorKind
    message: str
    hint: str | None = None


PipelineError = (
    ExtractionError
    | TagQueryError
    | PushError
    | PlanError
    | BuildError
    | StagingError
    | CollectError
    | PublishError
)
