"""Build fan-out: one independent job per platform target, run in parallel.

Jobs share nothing but the staging area. Each one works in its own temporary
directory (own checkout, own output), and a failing job never stops the
others: ``fan_out`` always returns after every job reached a terminal state.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from shiptag.core.config import TargetConfig
from shiptag.core.result import Err, Ok, Result
from shiptag.output.console import ConsoleProtocol
from shiptag.services.release.checkout import SourceCheckout
from shiptag.services.release.errors import BuildError, PlanError
from shiptag.services.release.model import BuildJob, FanOutReport, JobResult
from shiptag.services.release.staging import ArtifactStaging
from shiptag.services.release.toolchain import Toolchain

JobFn = Callable[[BuildJob], JobResult]


def plan_jobs(
    targets: Sequence[TargetConfig],
    *,
    binary: str,
    commit: str,
) -> Result[tuple[BuildJob, ...], PlanError]:
    if not targets:
        return Err(PlanError(message="no build targets configured", hint="Add [[targets]] entries."))

    jobs = tuple(BuildJob(target=t, binary=binary, commit=commit) for t in targets)

    seen: set[str] = set()
    duplicates: list[str] = []
    for job in jobs:
        if job.artifact_name in seen:
            duplicates.append(job.artifact_name)
        seen.add(job.artifact_name)
    if duplicates:
        return Err(
            PlanError(
                message="build targets produce duplicate artifact names",
                hint="Duplicates: " + ", ".join(sorted(set(duplicates))),
            )
        )

    return Ok(jobs)


class JobRunner:
    """Checkout, build, rename and stage the artifact for one job."""

    def __init__(
        self,
        *,
        checkout: SourceCheckout,
        toolchain: Toolchain,
        staging: ArtifactStaging,
        console: ConsoleProtocol,
        work_root: Path | None = None,
    ) -> None:
        self._checkout = checkout
        self._toolchain = toolchain
        self._staging = staging
        self._console = console
        self._work_root = work_root

    def __call__(self, job: BuildJob) -> JobResult:
        name = job.artifact_name
        if self._work_root is not None:
            self._work_root.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix=f"shiptag-{name}-", dir=self._work_root) as tmp:
            workdir = Path(tmp)

            src = self._checkout.checkout(job.commit, workdir / "src")
            if isinstance(src, Err):
                return JobResult(
                    job=job,
                    error=BuildError(
                        artifact=name,
                        kind="checkout_failed",
                        message=f"checkout of {job.commit[:12]} failed for {job.label}",
                        hint=src.error.message,
                    ),
                )

            built = self._toolchain.build_release(src.value, job)
            if isinstance(built, Err):
                return JobResult(job=job, error=built.error)

            artifact = workdir / "out" / name
            artifact.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(built.value, artifact)

            staged = self._staging.upload_file(name, artifact)
            if isinstance(staged, Err):
                return JobResult(
                    job=job,
                    error=BuildError(
                        artifact=name,
                        kind="staging_failed",
                        message=staged.error.message,
                        hint=staged.error.hint,
                    ),
                )

            return JobResult(job=job, size=artifact.stat().st_size)


def fan_out(
    jobs: Sequence[BuildJob],
    run_job: JobFn,
    *,
    console: ConsoleProtocol,
    max_workers: int = 0,
) -> FanOutReport:
    """Run every job concurrently and wait for all of them.

    An exception escaping ``run_job`` is recorded as that job's failure; it
    does not cancel the other jobs.
    """
    if not jobs:
        return FanOutReport(results=())

    workers = max_workers if max_workers > 0 else len(jobs)
    results: list[JobResult | None] = [None] * len(jobs)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shiptag-build") as executor:
        futures = {executor.submit(run_job, job): index for index, job in enumerate(jobs)}
        for future in as_completed(futures):
            index = futures[future]
            job = jobs[index]
            try:
                result = future.result()
            except Exception as e:  # noqa: BLE001
                result = JobResult(
                    job=job,
                    error=BuildError(
                        artifact=job.artifact_name,
                        kind="crashed",
                        message=f"build job crashed for {job.label}: {e}",
                    ),
                )
            results[index] = result

            if result.ok:
                console.success(f"{job.artifact_name} ({result.size} bytes)")
            elif result.error is not None:
                console.error(f"{job.artifact_name}: {result.error.message}")

    return FanOutReport(results=tuple(r for r in results if r is not None))
