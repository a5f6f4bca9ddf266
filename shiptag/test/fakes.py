"""In-process stand-ins for git, the toolchain and the source checkout."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from shiptag.core.result import Err, Ok, Result
from shiptag.git.repository import GitError
from shiptag.services.release.errors import BuildError
from shiptag.services.release.model import BuildJob

HEAD = "0123456789abcdef0123456789abcdef01234567"


def write_manifest(root: Path, version: str, *, name: str = "devbox") -> Path:
    path = root / "Cargo.toml"
    path.write_text(
        f'[package]\nname = "{name}"\nversion = "{version}"\nedition = "2021"\n\n'
        '[dependencies]\nserde = { version = "1", features = ["derive"] }\n',
        encoding="utf-8",
    )
    return path


@dataclass
class FakeTagNamespace:
    """Local tags plus one remote, kept in sets.

    ``tag_commits`` maps a local tag to its commit (default: ``head``).

    ``race_on_push`` simulates another run pushing the same tag first: the
    push is rejected, but the tag is on the remote afterwards.
    """

    remote: set[str] = field(default_factory=set)
    local: set[str] = field(default_factory=set)
    tag_commits: dict[str, str] = field(default_factory=dict)
    head: str = HEAD
    fail_list: bool = False
    fail_create: bool = False
    fail_push: bool = False
    race_on_push: bool = False
    created: list[tuple[str, str, str]] = field(default_factory=list)
    pushed: list[str] = field(default_factory=list)

    def head_commit(self) -> Result[str, GitError]:
        return Ok(self.head)

    def list_tags(self) -> Result[set[str], GitError]:
        if self.fail_list:
            return Err(GitError(command="ls-remote --tags", message="could not read from remote"))
        return Ok(set(self.remote))

    def local_tag_exists(self, name: str) -> bool:
        return name in self.local

    def tag_commit(self, name: str) -> Result[str, GitError]:
        if name not in self.local:
            return Err(GitError(command="rev-parse", message=f"unknown tag {name}"))
        return Ok(self.tag_commits.get(name, self.head))

    def create_tag(self, name: str, message: str, commit: str) -> Result[None, GitError]:
        if self.fail_create:
            return Err(GitError(command="tag -a", message="cannot lock ref"))
        self.local.add(name)
        self.tag_commits[name] = commit
        self.created.append((name, message, commit))
        return Ok(None)

    def push_tag(self, name: str) -> Result[None, GitError]:
        if self.race_on_push:
            self.remote.add(name)
            return Err(GitError(command="push", message="! [rejected] (already exists)"))
        if self.fail_push:
            return Err(GitError(command="push", message="remote: Permission denied"))
        self.remote.add(name)
        self.pushed.append(name)
        return Ok(None)

    def delete_local_tag(self, name: str) -> Result[None, GitError]:
        self.local.discard(name)
        return Ok(None)


class FakeCheckout:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.commits: list[str] = []
        self._lock = threading.Lock()

    def checkout(self, commit: str, dest: Path) -> Result[Path, GitError]:
        with self._lock:
            self.commits.append(commit)
        if self.fail:
            return Err(GitError(command="clone", message="repository not found"))
        dest.mkdir(parents=True, exist_ok=True)
        (dest / "COMMIT").write_text(commit, encoding="utf-8")
        return Ok(dest)


class FakeToolchain:
    """Writes ``<label>@<commit>`` as the binary; selected labels fail.

    ``missing`` makes every job report cargo as not installed.

    ``delays`` holds per-label sleep seconds, to make jobs overlap.
    """

    def __init__(
        self,
        *,
        fail: set[str] | None = None,
        crash: set[str] | None = None,
        delays: dict[str, float] | None = None,
        missing: bool = False,
    ) -> None:
        self.fail = fail or set()
        self.missing = missing
        self.crash = crash or set()
        self.delays = delays or {}
        self.started: list[str] = []
        self.finished: list[str] = []
        self.sources: list[Path] = []
        self._lock = threading.Lock()

    def build_release(self, source: Path, job: BuildJob) -> Result[Path, BuildError]:
        with self._lock:
            self.started.append(job.label)
            self.sources.append(source)
        time.sleep(self.delays.get(job.label, 0.0))

        if self.missing:
            return Err(
                BuildError(
                    artifact=job.artifact_name,
                    kind="tool_missing",
                    message="cargo: missing",
                    hint="Install Rust: https://rustup.rs/",
                )
            )

        if job.label in self.crash:
            raise RuntimeError(f"toolchain exploded on {job.label}")
        if job.label in self.fail:
            with self._lock:
                self.finished.append(job.label)
            return Err(
                BuildError(
                    artifact=job.artifact_name,
                    kind="compile_failed",
                    message=f"cargo build failed for {job.label} (exit 101)",
                    hint="error[E0425]: cannot find value",
                )
            )

        out = source / "target" / "release" / job.binary
        out.parent.mkdir(parents=True, exist_ok=True)
        commit = (source / "COMMIT").read_text(encoding="utf-8")
        out.write_bytes(f"{job.label}@{commit}".encode())
        with self._lock:
            self.finished.append(job.label)
        return Ok(out)
