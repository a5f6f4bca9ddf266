from __future__ import annotations

from pathlib import Path

from shiptag.core.config import TargetConfig
from shiptag.core.result import Err, Ok
from shiptag.services.release.collector import collect, load_artifact_dir
from shiptag.services.release.errors import BuildError
from shiptag.services.release.model import BuildJob, FanOutReport, JobResult
from shiptag.services.release.staging import ArtifactStaging

LINUX = BuildJob(target=TargetConfig(os="linux", arch="amd64"), binary="devbox", commit="abc")
MACOS = BuildJob(target=TargetConfig(os="macos", arch="arm64"), binary="devbox", commit="abc")


def _staging(tmp_path: Path, **blobs: bytes) -> ArtifactStaging:
    staging = ArtifactStaging(tmp_path, "run-1")
    for name, data in blobs.items():
        assert isinstance(staging.upload(name.replace("_", "-"), data), Ok)
    return staging


def test_collects_in_job_order(tmp_path: Path) -> None:
    staging = _staging(tmp_path, devbox_macos_arm64=b"mac", devbox_linux_amd64=b"lin")
    report = FanOutReport(results=(JobResult(job=LINUX, size=3), JobResult(job=MACOS, size=3)))

    result = collect(report, staging)

    assert isinstance(result, Ok)
    assert result.value.items == (("devbox-linux-amd64", b"lin"), ("devbox-macos-arm64", b"mac"))


def test_any_failed_job_blocks_collection(tmp_path: Path) -> None:
    staging = _staging(tmp_path, devbox_linux_amd64=b"lin")
    failure = BuildError(artifact="devbox-macos-arm64", kind="compile_failed", message="boom")
    report = FanOutReport(results=(JobResult(job=LINUX), JobResult(job=MACOS, error=failure)))

    result = collect(report, staging)

    assert isinstance(result, Err)
    assert result.error.message == "1 of 2 builds failed: devbox-macos-arm64"
    assert result.error.failed == (failure,)


def test_missing_artifact(tmp_path: Path) -> None:
    staging = _staging(tmp_path, devbox_linux_amd64=b"lin")
    report = FanOutReport(results=(JobResult(job=LINUX), JobResult(job=MACOS)))

    result = collect(report, staging)

    assert isinstance(result, Err)
    assert result.error.missing == ("devbox-macos-arm64",)


def test_unexpected_artifact(tmp_path: Path) -> None:
    staging = _staging(tmp_path, devbox_linux_amd64=b"lin", devbox_freebsd_amd64=b"bsd")
    report = FanOutReport(results=(JobResult(job=LINUX),))

    result = collect(report, staging)

    assert isinstance(result, Err)
    assert result.error.unexpected == ("devbox-freebsd-amd64",)


def test_empty_report(tmp_path: Path) -> None:
    assert isinstance(collect(FanOutReport(results=()), _staging(tmp_path)), Err)


def test_load_artifact_dir_accepts_both_layouts(tmp_path: Path) -> None:
    (tmp_path / "devbox-linux-amd64").mkdir()
    (tmp_path / "devbox-linux-amd64" / "devbox-linux-amd64").write_bytes(b"lin")
    (tmp_path / "devbox-macos-arm64").write_bytes(b"mac")
    (tmp_path / ".DS_Store").write_bytes(b"")

    result = load_artifact_dir(tmp_path)

    assert isinstance(result, Ok)
    assert result.value.as_dict() == {"devbox-linux-amd64": b"lin", "devbox-macos-arm64": b"mac"}


def test_load_artifact_dir_errors(tmp_path: Path) -> None:
    assert isinstance(load_artifact_dir(tmp_path / "missing"), Err)
    assert isinstance(load_artifact_dir(tmp_path), Err)

    (tmp_path / "devbox-linux-amd64").mkdir()
    result = load_artifact_dir(tmp_path)
    assert isinstance(result, Err)
    assert "has no devbox-linux-amd64 file" in result.error.message
