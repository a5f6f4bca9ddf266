"""Thin layer over the ``gh`` CLI used by the GitHub release backend.

Reads (``gh api`` GETs) are idempotent and retried on transient network
failures. Anything that changes the release runs exactly once.
"""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from time import sleep
from typing import Literal

from shiptag.core.result import Err, Ok, Result
from shiptag.platform.process import ProcessError
from shiptag.platform.process import run as run_process
from shiptag.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
)

GH_INSTALL_HINT = "Install GitHub CLI: https://cli.github.com/"

# gh resolves these placeholders from the repository in the working directory.
CURRENT_REPO = "{owner}/{repo}"

_TRANSIENT = re.compile(
    r"timed out|timeout|connection (?:reset|refused)|temporarily unavailable"
    r"|service unavailable|bad gateway|network is unreachable|http (?:429|5\d\d)"
)
_NOT_FOUND = re.compile(r"http 404|release not found")

Failure = Literal["not_found", "transient", "fatal"]


@dataclass(frozen=True, slots=True)
class GhError:
    message: str
    hint: str | None = None
    not_found: bool = False


def classify(error: ProcessError) -> Failure:
    if error.timed_out:
        return "transient"
    text = f"{error.stderr}\n{error.stdout}".lower()
    if _NOT_FOUND.search(text):
        return "not_found"
    if _TRANSIENT.search(text):
        return "transient"
    return "fatal"


def ensure_gh_available() -> Result[None, GhError]:
    if shutil.which("gh") is None:
        return Err(GhError(message="gh: missing", hint=GH_INSTALL_HINT))
    return Ok(None)


def run_gh(
    *,
    workspace_root: Path,
    cmd: list[str],
    message: str,
    timeout: float = GH_TIMEOUT_SECONDS,
    attempts: int = 1,
) -> Result[str, GhError]:
    """Run a gh command; only pass attempts > 1 for idempotent reads."""
    attempt = 1
    while True:
        result = run_process(cmd, cwd=workspace_root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        failure = classify(result.error)
        if failure != "transient" or attempt >= attempts:
            return Err(
                GhError(
                    message=message,
                    hint=result.error.detail(),
                    not_found=failure == "not_found",
                )
            )
        sleep(GH_READ_RETRY_DELAY_SECONDS * attempt)
        attempt += 1


def gh_api_json(*, workspace_root: Path, endpoint: str) -> Result[object, GhError]:
    """GET endpoint and decode the JSON body."""
    body = run_gh(
        workspace_root=workspace_root,
        cmd=["gh", "api", endpoint],
        message=f"gh api failed: {endpoint}",
        attempts=GH_READ_RETRY_ATTEMPTS,
    )
    if isinstance(body, Err):
        return body

    try:
        return Ok(json.loads(body.value))
    except json.JSONDecodeError as e:
        return Err(GhError(message=f"gh api returned invalid JSON: {e}", hint=endpoint))
