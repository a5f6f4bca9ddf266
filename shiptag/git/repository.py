"""Git repository abstraction.

This module provides the Repository class for the git operations the release
pipeline needs: resolving HEAD, diffing revisions, and managing tags locally
and on a remote. All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.remote_tags("origin"):
        case Ok(tags):
            print("v1.3.0" in tags)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shiptag.core.result import Err, Ok, Result
from shiptag.platform.process import ProcessError
from shiptag.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

_TAG_REF_PREFIX = "refs/tags/"

__all__ = [
    "GitError",
    "Repository",
    "clone",
    "parse_ls_remote_tags",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or fallback,
        returncode=error.returncode,
    )


def parse_ls_remote_tags(output: str) -> set[str]:
    """Parse ``git ls-remote --tags`` output into bare tag names.

    Peeled entries (``refs/tags/v1.0^{}``) collapse onto their tag name.
    """
    tags: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        ref = parts[1]
        if not ref.startswith(_TAG_REF_PREFIX):
            continue
        name = ref[len(_TAG_REF_PREFIX) :]
        if name.endswith("^{}"):
            name = name[:-3]
        if name:
            tags.add(name)
    return tags


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def head_sha(self) -> Result[str, GitError]:
        result = self._run(["rev-parse", "HEAD"])
        match result:
            case Err(e):
                return Err(_git_error("rev-parse HEAD", e, "cannot resolve HEAD"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def changed_paths(self, base: str, head: str) -> Result[tuple[str, ...], GitError]:
        """Paths touched between two revisions (``git diff --name-only``)."""
        result = self._run(["diff", "--name-only", base, head])
        match result:
            case Err(e):
                return Err(_git_error("diff --name-only", e, "diff failed"))
            case Ok(stdout):
                return Ok(tuple(ln.strip() for ln in stdout.splitlines() if ln.strip()))

    def remote_tags(self, remote: str) -> Result[set[str], GitError]:
        result = self._run(["ls-remote", "--tags", remote])
        match result:
            case Err(e):
                return Err(_git_error("ls-remote --tags", e, "ls-remote failed"))
            case Ok(stdout):
                return Ok(parse_ls_remote_tags(stdout))

    def local_tag_exists(self, name: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"{_TAG_REF_PREFIX}{name}"])
        return isinstance(result, Ok)

    def tag_commit(self, name: str) -> Result[str, GitError]:
        """Commit an (annotated) tag points to."""
        result = self._run(["rev-parse", "--verify", f"{_TAG_REF_PREFIX}{name}^{{commit}}"])
        if isinstance(result, Err):
            return Err(_git_error("rev-parse", result.error, f"cannot resolve tag {name}"))
        return Ok(result.value.strip())

    def create_tag(self, name: str, *, message: str, commit: str | None) -> Result[None, GitError]:
        """Create an annotated tag at commit (HEAD when None)."""
        args = ["tag", "-a", name, "-m", message]
        if commit:
            args.append(commit)
        result = self._run(args)
        if isinstance(result, Err):
            return Err(_git_error("tag -a", result.error, f"failed to create tag {name}"))
        return Ok(None)

    def delete_local_tag(self, name: str) -> Result[None, GitError]:
        result = self._run(["tag", "-d", name])
        if isinstance(result, Err):
            return Err(_git_error("tag -d", result.error, f"failed to delete tag {name}"))
        return Ok(None)

    def push_tag(self, remote: str, name: str) -> Result[None, GitError]:
        result = self._run(["push", remote, f"{_TAG_REF_PREFIX}{name}"])
        if isinstance(result, Err):
            return Err(_git_error("push", result.error, f"failed to push tag {name}"))
        return Ok(None)

    def checkout_detached(self, commit: str) -> Result[None, GitError]:
        result = self._run(["checkout", "--quiet", "--detach", commit])
        if isinstance(result, Err):
            return Err(_git_error("checkout --detach", result.error, f"cannot check out {commit}"))
        return Ok(None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def clone(source: Path, dest: Path) -> Result[Repository, GitError]:
    """Clone source into dest without checking out a branch.

    The clone does not share objects with source (``--no-hardlinks``), so a
    build cannot modify the origin checkout.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    result = run_process(
        ["git", "clone", "--quiet", "--no-hardlinks", "--no-checkout", str(source), str(dest)],
        cwd=dest.parent,
        timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(_git_error("clone", result.error, f"failed to clone {source}"))
    return Ok(Repository(dest))
