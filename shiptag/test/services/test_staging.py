from __future__ import annotations

import threading
from pathlib import Path

from shiptag.core.result import Err, Ok
from shiptag.services.release.staging import ArtifactStaging, new_run_id


def test_upload_layout(tmp_path: Path) -> None:
    staging = ArtifactStaging(tmp_path, "run-1")

    result = staging.upload("devbox-linux-amd64", b"bin")

    assert result == Ok(tmp_path / "run-1" / "devbox-linux-amd64" / "devbox-linux-amd64")
    assert staging.download_all() == Ok({"devbox-linux-amd64": b"bin"})


def test_name_is_write_once_per_run(tmp_path: Path) -> None:
    staging = ArtifactStaging(tmp_path, "run-1")
    assert isinstance(staging.upload("devbox-linux-amd64", b"first"), Ok)

    again = staging.upload("devbox-linux-amd64", b"second")

    assert isinstance(again, Err)
    assert "already staged" in again.error.message
    assert staging.download_all() == Ok({"devbox-linux-amd64": b"first"})


def test_runs_are_isolated(tmp_path: Path) -> None:
    ArtifactStaging(tmp_path, "run-1").upload("devbox-linux-amd64", b"old")
    staging = ArtifactStaging(tmp_path, "run-2")

    assert staging.download_all() == Ok({})
    assert isinstance(staging.upload("devbox-linux-amd64", b"new"), Ok)


def test_rejects_path_like_names(tmp_path: Path) -> None:
    staging = ArtifactStaging(tmp_path, "run-1")

    for name in ("../escape", "a/b", "", ".hidden"):
        result = staging.upload(name, b"x")
        assert isinstance(result, Err), name


def test_concurrent_same_name_only_one_wins(tmp_path: Path) -> None:
    staging = ArtifactStaging(tmp_path, "run-1")
    results: list[bool] = []
    lock = threading.Lock()

    def worker(n: int) -> None:
        ok = isinstance(staging.upload("devbox-linux-amd64", f"{n}".encode()), Ok)
        with lock:
            results.append(ok)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1


def test_incomplete_slot_is_an_error(tmp_path: Path) -> None:
    staging = ArtifactStaging(tmp_path, "run-1")
    (staging.run_dir / "devbox-linux-amd64").mkdir(parents=True)

    result = staging.download_all()

    assert isinstance(result, Err)
    assert "incomplete" in result.error.message


def test_upload_file_and_discard(tmp_path: Path) -> None:
    src = tmp_path / "devbox"
    src.write_bytes(b"elf")
    staging = ArtifactStaging(tmp_path / "staging", "run-1")

    assert isinstance(staging.upload_file("devbox-linux-amd64", src), Ok)
    staging.discard()

    assert not staging.run_dir.exists()


def test_new_run_id_is_unique() -> None:
    ids = {new_run_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("run-") for i in ids)
