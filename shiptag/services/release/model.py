from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from shiptag.core.config import TargetConfig
from shiptag.services.release.errors import BuildError, PipelineError

TagState = Literal["exists", "pushed"]
Stage = Literal["watch", "tag", "trigger", "build", "collect", "publish"]
StageStatus = Literal["ok", "skipped", "failed"]

STAGES: tuple[Stage, ...] = ("watch", "tag", "trigger", "build", "collect", "publish")


@dataclass(frozen=True, slots=True)
class ManifestVersion:
    manifest: Path
    version: str
    tag_name: str


@dataclass(frozen=True, slots=True)
class TagOutcome:
    """Terminal success state of the tag gate."""

    tag_name: str
    version: str
    commit: str | None
    state: TagState

    @property
    def tag_exists(self) -> bool:
        # Mirrors the CI output contract: false means "created now, go build".
        return self.state == "exists"


@dataclass(frozen=True, slots=True)
class BuildJob:
    target: TargetConfig
    binary: str
    commit: str

    @property
    def artifact_name(self) -> str:
        return f"{self.binary}-{self.target.os}-{self.target.arch}"

    @property
    def label(self) -> str:
        return f"{self.target.os}/{self.target.arch}"


@dataclass(frozen=True, slots=True)
class JobResult:
    job: BuildJob
    error: BuildError | None = None
    size: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class FanOutReport:
    """Every job's terminal state, in job order."""

    results: tuple[JobResult, ...]

    @property
    def failed(self) -> tuple[JobResult, ...]:
        return tuple(r for r in self.results if not r.ok)

    @property
    def succeeded(self) -> tuple[JobResult, ...]:
        return tuple(r for r in self.results if r.ok)

    @property
    def all_ok(self) -> bool:
        return not self.failed

    @property
    def expected_names(self) -> tuple[str, ...]:
        return tuple(r.job.artifact_name for r in self.results)


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    """Ordered, name-unique artifact contents."""

    items: tuple[tuple[str, bytes], ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.items)

    def as_dict(self) -> dict[str, bytes]:
        return dict(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    name: str
    size: int
    asset_id: int | None = None
    # Only the in-memory backend keeps contents.
    data: bytes | None = None


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    id: str
    display_name: str
    assets: tuple[ReleaseAsset, ...] = ()
    draft: bool = False

    @property
    def asset_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.assets)

    def get(self, name: str) -> ReleaseAsset | None:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


@dataclass(frozen=True, slots=True)
class StageOutcome:
    stage: Stage
    status: StageStatus
    detail: str = ""


@dataclass(frozen=True, slots=True)
class PipelineReport:
    stages: tuple[StageOutcome, ...]
    error: PipelineError | None = None
    tag: TagOutcome | None = None
    release: ReleaseRecord | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def failed_stage(self) -> Stage | None:
        for outcome in self.stages:
            if outcome.status == "failed":
                return outcome.stage
        return None

    def status_of(self, stage: Stage) -> StageStatus | None:
        for outcome in self.stages:
            if outcome.stage == stage:
                return outcome.status
        return None
