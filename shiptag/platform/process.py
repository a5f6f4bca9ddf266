"""Run git, gh and cargo without ever raising.

``run`` returns ``Ok(stdout)`` or ``Err(ProcessError)``. Commands never read
a terminal: git and gh prompts are disabled, so a missing credential fails
fast instead of hanging a CI job.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from shiptag.core.result import Err, Ok, Result

__all__ = ["NON_INTERACTIVE_ENV", "ProcessError", "run"]

NON_INTERACTIVE_ENV: dict[str, str] = {
    "GIT_TERMINAL_PROMPT": "0",
    "GH_PROMPT_DISABLED": "1",
}

# Exit code used when the process never ran or was killed on timeout.
NOT_RUN = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run, timed out, or exited non-zero."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    def detail(self) -> str:
        """stderr, else stdout, else the one-line summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def _environment(extra_env: Mapping[str, str] | None) -> dict[str, str]:
    env = dict(os.environ)
    env.update(NON_INTERACTIVE_ENV)
    if extra_env:
        env.update(extra_env)
    return env


def run(
    cmd: Sequence[str],
    cwd: Path,
    *,
    timeout: float | None = None,
    extra_env: Mapping[str, str] | None = None,
) -> Result[str, ProcessError]:
    """Run cmd in cwd and capture its output as text.

    Args:
        cmd: Program and arguments.
        cwd: Working directory.
        timeout: Seconds before the process is killed (None waits forever).
        extra_env: Variables layered over the current environment.

    Returns:
        Ok(stdout) on exit 0, Err(ProcessError) otherwise.
    """
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            command,
            cwd=str(cwd),
            env=_environment(extra_env),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=command,
                returncode=NOT_RUN,
                stdout=partial,
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command=command, returncode=NOT_RUN, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=command,
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )
    return Ok(proc.stdout)
