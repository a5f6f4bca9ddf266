"""Tag gate: create ``v<version>`` exactly once, no matter how often it runs.

The remote tag namespace is the source of truth. A tag already on the remote
is a successful no-op, so a repeated or overlapping trigger for a released
version never fails and never produces a second tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from shiptag.core.result import Err, Ok, Result
from shiptag.git.repository import GitError, Repository
from shiptag.output.console import ConsoleProtocol, Style
from shiptag.services.release.errors import PushError, TagQueryError
from shiptag.services.release.model import ManifestVersion, TagOutcome

DEFAULT_TAG_MESSAGE = "Release version {version}"


class TagNamespace(Protocol):
    """Where tags live: a local repository plus the remote it pushes to."""

    def head_commit(self) -> Result[str, GitError]: ...

    def list_tags(self) -> Result[set[str], GitError]: ...

    def local_tag_exists(self, name: str) -> bool: ...

    def tag_commit(self, name: str) -> Result[str, GitError]: ...

    def create_tag(self, name: str, message: str, commit: str) -> Result[None, GitError]: ...

    def push_tag(self, name: str) -> Result[None, GitError]: ...

    def delete_local_tag(self, name: str) -> Result[None, GitError]: ...


class GitTagNamespace:
    """TagNamespace backed by a git checkout and one of its remotes."""

    def __init__(self, repo: Repository, *, remote: str = "origin") -> None:
        self.repo = repo
        self.remote = remote

    @classmethod
    def at(cls, root: Path, *, remote: str = "origin") -> GitTagNamespace:
        return cls(Repository(root), remote=remote)

    def head_commit(self) -> Result[str, GitError]:
        return self.repo.head_sha()

    def list_tags(self) -> Result[set[str], GitError]:
        return self.repo.remote_tags(self.remote)

    def local_tag_exists(self, name: str) -> bool:
        return self.repo.local_tag_exists(name)

    def tag_commit(self, name: str) -> Result[str, GitError]:
        return self.repo.tag_commit(name)

    def create_tag(self, name: str, message: str, commit: str) -> Result[None, GitError]:
        return self.repo.create_tag(name, message=message, commit=commit)

    def push_tag(self, name: str) -> Result[None, GitError]:
        return self.repo.push_tag(self.remote, name)

    def delete_local_tag(self, name: str) -> Result[None, GitError]:
        return self.repo.delete_local_tag(name)


def _exists(found: ManifestVersion, commit: str | None) -> TagOutcome:
    return TagOutcome(tag_name=found.tag_name, version=found.version, commit=commit, state="exists")


def ensure_tag(
    found: ManifestVersion,
    *,
    namespace: TagNamespace,
    console: ConsoleProtocol,
    message_template: str = DEFAULT_TAG_MESSAGE,
    rollback_on_push_failure: bool = True,
    dry_run: bool = False,
) -> Result[TagOutcome, TagQueryError | PushError]:
    """Create and push the tag for found.version unless the remote has it.

    Returns:
        Ok(TagOutcome) with state "exists" (nothing done) or "pushed".
        Err(TagQueryError) if the remote could not be listed.
        Err(PushError) if the tag could not be created or pushed.
    """
    tag = found.tag_name

    head = namespace.head_commit()
    if isinstance(head, Err):
        return Err(
            TagQueryError(
                tag=tag,
                message="cannot resolve the commit to tag",
                hint=head.error.message,
            )
        )
    commit = head.value

    remote_tags = namespace.list_tags()
    if isinstance(remote_tags, Err):
        return Err(
            TagQueryError(
                tag=tag,
                message=f"failed to list remote tags while checking {tag}",
                hint=remote_tags.error.message,
            )
        )

    if tag in remote_tags.value:
        console.info(f"tag {tag} already exists on remote, skipping tag creation")
        return Ok(_exists(found, commit))

    message = message_template.format(version=found.version)
    console.print(f"git tag -a {tag} -m {message!r} {commit[:12]}", Style.DIM)
    console.print(f"git push <remote> refs/tags/{tag}", Style.DIM)
    if dry_run:
        return Ok(TagOutcome(tag_name=tag, version=found.version, commit=commit, state="pushed"))

    created_now = False
    if namespace.local_tag_exists(tag):
        # Left over from an earlier run whose push failed; push it as is and
        # build what it points to.
        console.warning(f"tag {tag} exists locally but not on remote, pushing it")
        tagged_commit = namespace.tag_commit(tag)
        if isinstance(tagged_commit, Err):
            return Err(
                PushError(
                    tag=tag,
                    message=f"cannot resolve local tag {tag}",
                    hint=tagged_commit.error.message,
                    local_tag_created=True,
                )
            )
        commit = tagged_commit.value
    else:
        created = namespace.create_tag(tag, message, commit)
        if isinstance(created, Err):
            return Err(
                PushError(
                    tag=tag,
                    message=f"failed to create tag {tag}",
                    hint=created.error.message,
                    local_tag_created=False,
                )
            )
        created_now = True

    pushed = namespace.push_tag(tag)
    if isinstance(pushed, Ok):
        console.success(f"tag {tag} pushed")
        return Ok(TagOutcome(tag_name=tag, version=found.version, commit=commit, state="pushed"))

    # A concurrent run may have pushed the same tag first.
    recheck = namespace.list_tags()
    if isinstance(recheck, Ok) and tag in recheck.value:
        if created_now:
            namespace.delete_local_tag(tag)
        console.info(f"tag {tag} was pushed by another run, skipping")
        return Ok(_exists(found, commit))

    removed = False
    if created_now and rollback_on_push_failure:
        removed = isinstance(namespace.delete_local_tag(tag), Ok)

    return Err(
        PushError(
            tag=tag,
            message=f"failed to push tag {tag}",
            hint=pushed.error.message,
            local_tag_created=True,
            local_tag_removed=removed,
        )
    )
