from __future__ import annotations

from pathlib import Path
from typing import Protocol

from shiptag.core.result import Err, Ok, Result
from shiptag.git.repository import GitError, clone


class SourceCheckout(Protocol):
    def checkout(self, commit: str, dest: Path) -> Result[Path, GitError]: ...


class GitSourceCheckout:
    """Fresh clone of the source repository, detached at the commit to build."""

    def __init__(self, source_root: Path) -> None:
        self.source_root = source_root

    def checkout(self, commit: str, dest: Path) -> Result[Path, GitError]:
        cloned = clone(self.source_root, dest)
        if isinstance(cloned, Err):
            return cloned

        detached = cloned.value.checkout_detached(commit)
        if isinstance(detached, Err):
            return detached
        return Ok(dest)
