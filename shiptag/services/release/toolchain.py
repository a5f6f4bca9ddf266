"""Toolchain adapters: turn a clean source checkout into a release binary.

Cargo is a system tool: it is looked up on PATH and never installed here.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Protocol

from shiptag.core.result import Err, Ok, Result
from shiptag.output.console import ConsoleProtocol, Style
from shiptag.platform.process import run as run_process
from shiptag.services.release.errors import BuildError
from shiptag.services.release.model import BuildJob
from shiptag.services.release.timeouts import CARGO_BUILD_TIMEOUT_SECONDS

CARGO_INSTALL_HINT = "Install Rust via https://rustup.rs/"

_STDERR_TAIL_LINES = 20


class Toolchain(Protocol):
    def build_release(self, source: Path, job: BuildJob) -> Result[Path, BuildError]: ...


def _tail(text: str, lines: int = _STDERR_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class CargoToolchain:
    """``cargo build --release`` for one target."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        cargo: str = "cargo",
        timeout: float = CARGO_BUILD_TIMEOUT_SECONDS,
    ) -> None:
        self._console = console
        self._cargo = cargo
        self._timeout = timeout

    def command(self, job: BuildJob) -> list[str]:
        cmd = [self._cargo, "build", "--release"]
        if job.target.triple:
            cmd.extend(["--target", job.target.triple])
        cmd.extend(job.target.cargo_args)
        return cmd

    def output_path(self, source: Path, job: BuildJob) -> Path:
        out_dir = source / "target"
        if job.target.triple:
            out_dir = out_dir / job.target.triple
        suffix = ".exe" if job.target.os == "windows" else ""
        return out_dir / "release" / f"{job.binary}{suffix}"

    def build_release(self, source: Path, job: BuildJob) -> Result[Path, BuildError]:
        if shutil.which(self._cargo) is None:
            return Err(
                BuildError(
                    artifact=job.artifact_name,
                    kind="tool_missing",
                    message=f"{self._cargo}: missing",
                    hint=CARGO_INSTALL_HINT,
                )
            )

        cmd = self.command(job)
        self._console.print(f"{job.label}: {' '.join(cmd)}", Style.DIM)
        result = run_process(cmd, cwd=source, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(
                BuildError(
                    artifact=job.artifact_name,
                    kind="compile_failed",
                    message=f"cargo build failed for {job.label} (exit {e.returncode})",
                    hint=_tail(e.stderr) or None,
                )
            )

        binary = self.output_path(source, job)
        if not binary.is_file():
            return Err(
                BuildError(
                    artifact=job.artifact_name,
                    kind="output_missing",
                    message=f"output not found: {binary}",
                )
            )
        return Ok(binary)
