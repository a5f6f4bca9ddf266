from __future__ import annotations

from pathlib import Path

import pytest

from shiptag.core.result import Err, Ok
from shiptag.git import repository as repo_mod
from shiptag.platform.process import ProcessError
from shiptag.services.release.checkout import GitSourceCheckout


def test_clones_then_detaches(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        calls.append(cmd)
        return Ok("")

    monkeypatch.setattr(repo_mod, "run_process", fake_run)
    dest = tmp_path / "job" / "src"

    result = GitSourceCheckout(tmp_path / "origin").checkout("abc123", dest)

    assert result == Ok(dest)
    assert calls[0][:2] == ["git", "clone"]
    assert calls[0][-2:] == [str(tmp_path / "origin"), str(dest)]
    assert calls[1] == ["git", "-C", str(dest), "checkout", "--quiet", "--detach", "abc123"]


def test_unknown_commit(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        if "checkout" in cmd:
            return Err(ProcessError(tuple(cmd), 128, "", "fatal: reference is not a tree: abc123"))
        return Ok("")

    monkeypatch.setattr(repo_mod, "run_process", fake_run)

    result = GitSourceCheckout(tmp_path).checkout("abc123", tmp_path / "src")

    assert isinstance(result, Err)
    assert "reference is not a tree" in result.error.message
