"""Tests for shiptag.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from shiptag.core.result import Err, Ok
from shiptag.platform.process import ProcessError, run


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "push"),
            returncode=1,
            stdout="",
            stderr="rejected",
        )
        assert str(error) == "git push failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("cargo", "build", "--release", "--target", "x86_64-unknown-linux-gnu"),
            returncode=101,
            stdout="",
            stderr="",
        )
        assert str(error) == "cargo build --release ... failed (exit 101)"

    def test_detail_prefers_stderr(self) -> None:
        assert ProcessError(("gh",), 1, "out", " err \n").detail() == "err"
        assert ProcessError(("gh",), 1, "out", "").detail() == "out"
        assert ProcessError(("gh",), 1, "", "").detail() == "gh failed (exit 1)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert "bad" in result.error.stderr

    def test_missing_binary_is_error(self, tmp_path: Path) -> None:
        result = run(["shiptag-no-such-binary"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout_is_error(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr
        assert result.error.timed_out is True

    def test_runs_in_cwd(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert Path(result.value.strip()).resolve() == tmp_path.resolve()

    def test_prompts_are_disabled(self, tmp_path: Path) -> None:
        script = "import os; print(os.environ['GIT_TERMINAL_PROMPT'], os.environ['GH_PROMPT_DISABLED'])"
        result = run([sys.executable, "-c", script], cwd=tmp_path)

        assert result == Ok("0 1\n")

    def test_extra_env_is_layered(self, tmp_path: Path) -> None:
        script = "import os; print(os.environ['SHIPTAG_PROBE'], 'PATH' in os.environ)"
        result = run([sys.executable, "-c", script], cwd=tmp_path, extra_env={"SHIPTAG_PROBE": "x"})

        assert result == Ok("x True\n")
