"""End-to-end release pipeline.

    watch -> tag -> trigger -> build -> collect -> publish

Stages run strictly in sequence and the first fatal error ends the run. The
returned report names every stage's status; stages after a stop are
``skipped``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from shiptag.core.config import Config
from shiptag.core.result import Err, Ok, Result
from shiptag.output.console import ConsoleProtocol
from shiptag.services.release.checkout import GitSourceCheckout, SourceCheckout
from shiptag.services.release.collector import collect
from shiptag.services.release.errors import PipelineError, PlanError, PublishError
from shiptag.services.release.fanout import JobRunner, fan_out, plan_jobs
from shiptag.services.release.manifest import manifest_changed, read_manifest
from shiptag.services.release.model import (
    STAGES,
    ArtifactSet,
    PipelineReport,
    ReleaseRecord,
    Stage,
    StageOutcome,
    StageStatus,
    TagOutcome,
)
from shiptag.services.release.publisher import (
    GhReleaseApi,
    InMemoryReleaseApi,
    ReleaseApi,
    publish_release,
)
from shiptag.services.release.staging import ArtifactStaging, new_run_id
from shiptag.services.release.tagging import GitTagNamespace, TagNamespace, ensure_tag
from shiptag.services.release.toolchain import CargoToolchain, Toolchain
from shiptag.services.release.trigger import ReleaseTrigger


@dataclass(frozen=True, slots=True)
class PipelineRequest:
    """One pipeline run.

    ``changed_paths`` is the change event's diff; None means "not known",
    which is treated as a manifest change (manual runs).
    """

    root: Path
    config: Config
    changed_paths: tuple[str, ...] | None = None
    dry_run: bool = False
    run_id: str | None = None


@dataclass(slots=True)
class PipelineDeps:
    namespace: TagNamespace
    toolchain: Toolchain
    checkout: SourceCheckout
    release_api: ReleaseApi
    console: ConsoleProtocol
    trigger: ReleaseTrigger = field(default_factory=ReleaseTrigger)

    @classmethod
    def for_project(
        cls,
        root: Path,
        config: Config,
        console: ConsoleProtocol,
        *,
        dry_run: bool = False,
    ) -> PipelineDeps:
        api: ReleaseApi
        if dry_run:
            api = InMemoryReleaseApi()
        else:
            api = GhReleaseApi(workspace_root=root, console=console, repo=config.project.repo)
        return cls(
            namespace=GitTagNamespace.at(root, remote=config.project.remote),
            toolchain=CargoToolchain(console=console),
            checkout=GitSourceCheckout(root),
            release_api=api,
            console=console,
        )


class _Stages:
    def __init__(self) -> None:
        self._done: list[StageOutcome] = []

    def mark(self, stage: Stage, status: StageStatus, detail: str = "") -> None:
        self._done.append(StageOutcome(stage=stage, status=status, detail=detail))

    def report(
        self,
        *,
        error: PipelineError | None = None,
        tag: TagOutcome | None = None,
        release: ReleaseRecord | None = None,
    ) -> PipelineReport:
        seen = {o.stage for o in self._done}
        rest = tuple(StageOutcome(stage=s, status="skipped") for s in STAGES if s not in seen)
        return PipelineReport(stages=(*self._done, *rest), error=error, tag=tag, release=release)


@dataclass(frozen=True, slots=True)
class BuildOutput:
    artifacts: ArtifactSet
    staging: ArtifactStaging


def build_artifacts(
    *,
    root: Path,
    config: Config,
    commit: str,
    run_id: str,
    deps: PipelineDeps,
) -> tuple[Result[BuildOutput, PipelineError], Stage]:
    """Fan out one job per target and wait at the barrier.

    Returns the result plus the stage that produced it, so a failure can be
    attributed to ``build`` or ``collect``.
    """
    console = deps.console
    jobs = plan_jobs(config.targets, binary=config.project.binary, commit=commit)
    if isinstance(jobs, Err):
        return jobs, "build"

    staging = ArtifactStaging(root / config.build.staging_dir, run_id)
    runner = JobRunner(
        checkout=deps.checkout,
        toolchain=deps.toolchain,
        staging=staging,
        console=console,
    )
    console.print(f"building {len(jobs.value)} targets at {commit[:12]} ({run_id})")
    report = fan_out(jobs.value, runner, console=console, max_workers=config.build.max_workers)

    collected = collect(report, staging)
    if isinstance(collected, Err):
        # An incomplete set is never published; only publish failures keep staging.
        staging.discard()
        stage: Stage = "build" if not report.all_ok else "collect"
        return collected, stage
    return Ok(BuildOutput(artifacts=collected.value, staging=staging)), "collect"


def run_pipeline(request: PipelineRequest, deps: PipelineDeps) -> PipelineReport:
    config = request.config
    console = deps.console
    stages = _Stages()

    # watch
    console.header("watch")
    manifest = config.project.manifest
    if request.changed_paths is not None and not manifest_changed(request.changed_paths, manifest):
        console.info(f"{manifest} not changed, nothing to release")
        stages.mark("watch", "skipped", "manifest unchanged")
        return stages.report()

    found = read_manifest(request.root / manifest, prefix=config.tagging.prefix)
    if isinstance(found, Err):
        stages.mark("watch", "failed", found.error.message)
        return stages.report(error=found.error)
    console.print(f"{manifest}: version {found.value.version} -> {found.value.tag_name}")
    stages.mark("watch", "ok", found.value.version)

    # tag
    console.header("tag")
    tagged = ensure_tag(
        found.value,
        namespace=deps.namespace,
        console=console,
        message_template=config.tagging.message,
        rollback_on_push_failure=config.tagging.rollback_on_push_failure,
        dry_run=request.dry_run,
    )
    if isinstance(tagged, Err):
        stages.mark("tag", "failed", tagged.error.message)
        return stages.report(error=tagged.error)
    outcome = tagged.value
    stages.mark("tag", "ok", f"{outcome.tag_name} {outcome.state}")

    # trigger
    run_id = request.run_id or new_run_id()
    if not deps.trigger.fire(run_id, outcome):
        console.info(f"run {run_id} already triggered a build, skipping")
        stages.mark("trigger", "skipped", "already triggered")
        return stages.report(tag=outcome)
    if outcome.state == "exists":
        console.info(f"{outcome.tag_name} already exists, rebuilding {config.release.id}")
    stages.mark("trigger", "ok", run_id)

    # build + collect
    console.header("build")
    if outcome.commit is None:
        error = PlanError(message=f"no commit recorded for {outcome.tag_name}")
        stages.mark("build", "failed", error.message)
        return stages.report(error=error, tag=outcome)

    built, at = build_artifacts(
        root=request.root,
        config=config,
        commit=outcome.commit,
        run_id=run_id,
        deps=deps,
    )
    if isinstance(built, Err):
        if at == "collect":
            stages.mark("build", "ok")
        stages.mark(at, "failed", built.error.message)
        return stages.report(error=built.error, tag=outcome)
    stages.mark("build", "ok", f"{len(built.value.artifacts)} artifacts")
    stages.mark("collect", "ok", ", ".join(built.value.artifacts.names))

    # publish
    console.header("publish")
    published = publish_staged(
        root=request.root,
        config=config,
        artifacts=built.value.artifacts,
        deps=deps,
    )
    if isinstance(published, Err):
        console.print(f"staged artifacts kept in {built.value.staging.run_dir}")
        stages.mark("publish", "failed", published.error.message)
        return stages.report(error=published.error, tag=outcome)

    built.value.staging.discard()
    stages.mark("publish", "ok", config.release.id)
    return stages.report(tag=outcome, release=published.value)


def publish_staged(
    *,
    root: Path,
    config: Config,
    artifacts: ArtifactSet,
    deps: PipelineDeps,
) -> Result[ReleaseRecord, PublishError]:
    """Publish an already collected artifact set to the configured release."""
    return publish_release(
        api=deps.release_api,
        release_id=config.release.id,
        display_name=config.release.name,
        artifacts=artifacts,
        lock_dir=root / config.build.lock_dir,
        lock_timeout=config.release.lock_timeout,
        console=deps.console,
    )
