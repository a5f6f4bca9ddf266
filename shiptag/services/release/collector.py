"""Artifact collector: the all-or-nothing barrier between build and publish."""

from __future__ import annotations

from pathlib import Path

from shiptag.core.result import Err, Ok, Result
from shiptag.services.release.errors import CollectError, StagingError
from shiptag.services.release.model import ArtifactSet, FanOutReport
from shiptag.services.release.staging import ArtifactStaging


def collect(
    report: FanOutReport,
    staging: ArtifactStaging,
) -> Result[ArtifactSet, CollectError | StagingError]:
    """Gather the staged artifacts of a fully finished fan-out.

    Returns Err if any job failed, or if staging does not hold exactly the
    expected artifact names. A partial set is never returned.
    """
    if not report.results:
        return Err(CollectError(message="no build jobs ran"))

    failed = report.failed
    if failed:
        labels = ", ".join(r.job.artifact_name for r in failed)
        return Err(
            CollectError(
                message=f"{len(failed)} of {len(report.results)} builds failed: {labels}",
                failed=tuple(r.error for r in failed if r.error is not None),
                hint="Nothing was published; fix the failing target and rerun.",
            )
        )

    downloaded = staging.download_all()
    if isinstance(downloaded, Err):
        return downloaded
    blobs = downloaded.value

    expected = report.expected_names
    missing = tuple(name for name in expected if name not in blobs)
    unexpected = tuple(sorted(name for name in blobs if name not in expected))
    if missing or unexpected:
        return Err(
            CollectError(
                message="staged artifacts do not match the build jobs",
                missing=missing,
                unexpected=unexpected,
                hint=f"staging: {staging.run_dir}",
            )
        )

    return Ok(ArtifactSet(items=tuple((name, blobs[name]) for name in expected)))


def load_artifact_dir(directory: Path) -> Result[ArtifactSet, StagingError]:
    """Read artifacts downloaded into a directory, one per name.

    Accepts both flat files (``dir/<name>``) and the per-artifact folders a
    CI download step produces (``dir/<name>/<name>``).
    """
    if not directory.is_dir():
        return Err(StagingError(name=directory.name, message=f"not a directory: {directory}"))

    items: list[tuple[str, bytes]] = []
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith("."):
            continue
        blob = entry / entry.name if entry.is_dir() else entry
        if not blob.is_file():
            return Err(
                StagingError(
                    name=entry.name,
                    message=f"artifact folder has no {entry.name} file: {entry}",
                )
            )
        try:
            items.append((entry.name, blob.read_bytes()))
        except OSError as e:
            return Err(StagingError(name=entry.name, message=f"cannot read {blob}: {e}"))

    if not items:
        return Err(StagingError(name=directory.name, message=f"no artifacts in {directory}"))
    return Ok(ArtifactSet(items=tuple(items)))
