"""Release publisher: create-or-update one well-known release record.

Semantics of an upsert with artifacts ``new`` onto a release holding ``old``:

- an asset in both is replaced (old content discarded),
- an asset only in ``old`` is kept (stale names are never pruned),
- an asset only in ``new`` is appended.

Either every new artifact lands or the call fails and the release keeps its
previous state. Runs targeting the same release id are serialised with a
file lock for the whole upsert.
"""

from __future__ import annotations

import re
import tempfile
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from shiptag.core.result import Err, Ok, Result
from shiptag.core.structured import as_obj_list, as_str_dict, get_int, get_str
from shiptag.output.console import ConsoleProtocol, Style
from shiptag.platform.files import exclusive_lock
from shiptag.services.release.errors import PublishError, PublishErrorKind
from shiptag.services.release.gh import (
    CURRENT_REPO,
    GhError,
    ensure_gh_available,
    gh_api_json,
    run_gh,
)
from shiptag.services.release.model import ArtifactSet, ReleaseAsset, ReleaseRecord
from shiptag.services.release.timeouts import GH_UPLOAD_TIMEOUT_SECONDS


class ReleaseApi(Protocol):
    def get_release(self, release_id: str) -> Result[ReleaseRecord | None, PublishError]: ...

    def upsert_release(
        self,
        release_id: str,
        display_name: str,
        artifacts: ArtifactSet,
        *,
        replace_matching: bool = True,
    ) -> Result[ReleaseRecord, PublishError]: ...


def merge_assets(existing: Iterable[ReleaseAsset], artifacts: ArtifactSet) -> tuple[ReleaseAsset, ...]:
    """Replace same-name assets in place, keep the rest, append new names."""
    incoming = artifacts.as_dict()
    merged: list[ReleaseAsset] = []
    seen: set[str] = set()
    for asset in existing:
        if asset.name in incoming:
            data = incoming[asset.name]
            merged.append(ReleaseAsset(name=asset.name, size=len(data), data=data))
        else:
            merged.append(asset)
        seen.add(asset.name)
    for name, data in artifacts.items:
        if name not in seen:
            merged.append(ReleaseAsset(name=name, size=len(data), data=data))
    return tuple(merged)


def _conflicts(record: ReleaseRecord | None, artifacts: ArtifactSet) -> tuple[str, ...]:
    if record is None:
        return ()
    return tuple(n for n in artifacts.names if record.get(n) is not None)


def _publish_error(release_id: str, kind: PublishErrorKind, error: GhError) -> PublishError:
    return PublishError(release_id=release_id, kind=kind, message=error.message, hint=error.hint)


class InMemoryReleaseApi:
    """ReleaseApi kept in process memory, for dry runs and tests.

    ``fail_on`` names artifacts whose attachment fails, to exercise the
    all-or-nothing path.
    """

    def __init__(
        self,
        records: Iterable[ReleaseRecord] = (),
        *,
        fail_on: Iterable[str] = (),
    ) -> None:
        self._records = {r.id: r for r in records}
        self._fail_on = frozenset(fail_on)
        self._lock = threading.Lock()
        self.upsert_calls = 0

    def get_release(self, release_id: str) -> Result[ReleaseRecord | None, PublishError]:
        with self._lock:
            return Ok(self._records.get(release_id))

    def upsert_release(
        self,
        release_id: str,
        display_name: str,
        artifacts: ArtifactSet,
        *,
        replace_matching: bool = True,
    ) -> Result[ReleaseRecord, PublishError]:
        with self._lock:
            self.upsert_calls += 1
            current = self._records.get(release_id)

            failing = [n for n in artifacts.names if n in self._fail_on]
            if failing:
                return Err(
                    PublishError(
                        release_id=release_id,
                        kind="upload_failed",
                        message=f"failed to attach {', '.join(failing)}",
                    )
                )

            conflicts = _conflicts(current, artifacts)
            if conflicts and not replace_matching:
                return Err(
                    PublishError(
                        release_id=release_id,
                        kind="invalid_input",
                        message="assets already exist: " + ", ".join(conflicts),
                    )
                )

            existing = current.assets if current is not None else ()
            record = ReleaseRecord(
                id=release_id,
                display_name=display_name,
                assets=merge_assets(existing, artifacts),
            )
            self._records[release_id] = record
            return Ok(record)


def parse_release(obj: object) -> ReleaseRecord | None:
    """Parse a GitHub REST release payload."""
    data = as_str_dict(obj)
    if data is None:
        return None
    tag = get_str(data, "tag_name")
    if tag is None:
        return None

    assets: list[ReleaseAsset] = []
    for item in as_obj_list(data.get("assets")) or []:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        if name is None:
            continue
        assets.append(
            ReleaseAsset(name=name, size=get_int(d, "size") or 0, asset_id=get_int(d, "id"))
        )

    return ReleaseRecord(
        id=tag,
        display_name=get_str(data, "name") or "",
        assets=tuple(assets),
        draft=data.get("draft") is True,
    )


class GhReleaseApi:
    """ReleaseApi backed by GitHub releases through the ``gh`` CLI.

    Create path: the release is created as a draft with every asset, then
    published; a failed create removes the draft.

    Update path: new assets are uploaded under temporary
    ``<name>.<token>.partial`` names first. Only when all of them are
    uploaded are the old same-name assets deleted and the temporaries
    renamed. A failed upload deletes the temporaries and leaves the
    release as it was.
    """

    def __init__(
        self,
        *,
        workspace_root: Path,
        console: ConsoleProtocol,
        repo: str | None = None,
    ) -> None:
        self._root = workspace_root
        self._console = console
        self._slug = repo or CURRENT_REPO
        self._repo_args = ["--repo", repo] if repo else []

    def get_release(self, release_id: str) -> Result[ReleaseRecord | None, PublishError]:
        endpoint = f"repos/{self._slug}/releases/tags/{release_id}"
        obj = gh_api_json(workspace_root=self._root, endpoint=endpoint)
        if isinstance(obj, Err):
            if obj.error.not_found:
                return Ok(None)
            return Err(_publish_error(release_id, "query_failed", obj.error))

        record = parse_release(obj.value)
        if record is None:
            return Err(
                PublishError(
                    release_id=release_id,
                    kind="query_failed",
                    message=f"unexpected release payload: {release_id}",
                    hint=endpoint,
                )
            )
        return Ok(record)

    def upsert_release(
        self,
        release_id: str,
        display_name: str,
        artifacts: ArtifactSet,
        *,
        replace_matching: bool = True,
    ) -> Result[ReleaseRecord, PublishError]:
        ok = ensure_gh_available()
        if isinstance(ok, Err):
            return Err(_publish_error(release_id, "gh_missing", ok.error))

        current = self.get_release(release_id)
        if isinstance(current, Err):
            return current

        if current.value is None:
            return self._create(release_id, display_name, artifacts)

        conflicts = _conflicts(current.value, artifacts)
        if conflicts and not replace_matching:
            return Err(
                PublishError(
                    release_id=release_id,
                    kind="invalid_input",
                    message="assets already exist: " + ", ".join(conflicts),
                )
            )
        return self._update(current.value, display_name, artifacts)

    def _create(
        self, release_id: str, display_name: str, artifacts: ArtifactSet
    ) -> Result[ReleaseRecord, PublishError]:
        # A draft left by an interrupted run is invisible to get_release.
        self._delete_if_draft(release_id)
        with tempfile.TemporaryDirectory(prefix="shiptag-publish-") as tmp:
            files = _write_assets(Path(tmp), artifacts.items)
            cmd = [
                "gh",
                "release",
                "create",
                release_id,
                *self._repo_args,
                "--draft",
                "--title",
                display_name,
                "--notes",
                "",
                *[str(f) for f in files],
            ]
            self._console.print(f"gh release create {release_id} --draft ({len(files)} assets)", Style.DIM)
            created = run_gh(
                workspace_root=self._root,
                cmd=cmd,
                message=f"failed to create release {release_id}",
                timeout=GH_UPLOAD_TIMEOUT_SECONDS,
            )
        if isinstance(created, Err):
            self._delete_if_draft(release_id)
            return Err(_publish_error(release_id, "create_failed", created.error))

        self._console.print(f"gh release edit {release_id} --draft=false", Style.DIM)
        published = run_gh(
            workspace_root=self._root,
            cmd=["gh", "release", "edit", release_id, *self._repo_args, "--draft=false"],
            message=f"failed to publish draft release {release_id}",
        )
        if isinstance(published, Err):
            self._delete_if_draft(release_id)
            return Err(_publish_error(release_id, "create_failed", published.error))

        return self._refetch(release_id)

    def _update(
        self, current: ReleaseRecord, display_name: str, artifacts: ArtifactSet
    ) -> Result[ReleaseRecord, PublishError]:
        release_id = current.id
        token = uuid4().hex[:8]
        partial = {name: f"{name}.{token}.partial" for name in artifacts.names}

        with tempfile.TemporaryDirectory(prefix="shiptag-publish-") as tmp:
            files = _write_assets(Path(tmp), [(partial[n], data) for n, data in artifacts.items])
            self._console.print(
                f"gh release upload {release_id} ({len(files)} staged assets)", Style.DIM
            )
            uploaded = run_gh(
                workspace_root=self._root,
                cmd=["gh", "release", "upload", release_id, *self._repo_args, *[str(f) for f in files]],
                message=f"failed to upload assets to {release_id}",
                timeout=GH_UPLOAD_TIMEOUT_SECONDS,
            )
        if isinstance(uploaded, Err):
            self._discard_partials(release_id, token)
            return Err(_publish_error(release_id, "upload_failed", uploaded.error))

        refreshed = self.get_release(release_id)
        if isinstance(refreshed, Err) or refreshed.value is None:
            self._discard_partials(release_id, token)
            return Err(
                PublishError(
                    release_id=release_id,
                    kind="update_failed",
                    message=f"release {release_id} vanished during upload",
                )
            )
        record = refreshed.value

        staged_ids: dict[str, int] = {}
        for name, temp_name in partial.items():
            asset = record.get(temp_name)
            if asset is None or asset.asset_id is None:
                self._discard_partials(release_id, token)
                return Err(
                    PublishError(
                        release_id=release_id,
                        kind="upload_failed",
                        message=f"uploaded asset not found: {temp_name}",
                    )
                )
            staged_ids[name] = asset.asset_id

        swapped: list[str] = []
        for name in artifacts.names:
            old = record.get(name)
            if old is not None and old.asset_id is not None:
                deleted = self._delete_asset(old.asset_id)
                if isinstance(deleted, Err):
                    return Err(self._swap_error(release_id, name, swapped, deleted.error))
            renamed = self._rename_asset(staged_ids[name], name)
            if isinstance(renamed, Err):
                return Err(self._swap_error(release_id, name, swapped, renamed.error))
            swapped.append(name)

        if current.display_name != display_name:
            self._console.print(f"gh release edit {release_id} --title ...", Style.DIM)
            titled = run_gh(
                workspace_root=self._root,
                cmd=["gh", "release", "edit", release_id, *self._repo_args, "--title", display_name],
                message=f"failed to update title of {release_id}",
            )
            if isinstance(titled, Err):
                return Err(_publish_error(release_id, "update_failed", titled.error))

        return self._refetch(release_id)

    def _swap_error(
        self, release_id: str, name: str, swapped: list[str], error: GhError
    ) -> PublishError:
        done = ", ".join(swapped) or "none"
        return PublishError(
            release_id=release_id,
            kind="update_failed",
            message=f"failed to replace asset {name}",
            hint=f"already replaced: {done}; {error.hint or error.message}",
        )

    def _refetch(self, release_id: str) -> Result[ReleaseRecord, PublishError]:
        after = self.get_release(release_id)
        if isinstance(after, Err):
            return after
        if after.value is None:
            return Err(
                PublishError(
                    release_id=release_id,
                    kind="query_failed",
                    message=f"release {release_id} not found after publishing",
                )
            )
        return Ok(after.value)

    def _delete_asset(self, asset_id: int) -> Result[str, GhError]:
        return run_gh(
            workspace_root=self._root,
            cmd=["gh", "api", "-X", "DELETE", f"repos/{self._slug}/releases/assets/{asset_id}"],
            message=f"failed to delete asset {asset_id}",
        )

    def _rename_asset(self, asset_id: int, name: str) -> Result[str, GhError]:
        return run_gh(
            workspace_root=self._root,
            cmd=[
                "gh",
                "api",
                "-X",
                "PATCH",
                f"repos/{self._slug}/releases/assets/{asset_id}",
                "-f",
                f"name={name}",
            ],
            message=f"failed to rename asset {asset_id} to {name}",
        )

    def _discard_partials(self, release_id: str, token: str) -> None:
        current = self.get_release(release_id)
        if isinstance(current, Err) or current.value is None:
            self._console.warning(f"could not clean up partial uploads on {release_id}")
            return
        suffix = f".{token}.partial"
        for asset in current.value.assets:
            if asset.name.endswith(suffix) and asset.asset_id is not None:
                if isinstance(self._delete_asset(asset.asset_id), Err):
                    self._console.warning(f"could not delete partial asset {asset.name}")

    def _find_draft_id(self, release_id: str) -> int | None:
        # The tags endpoint 404s on drafts; only the release list shows them.
        listed = gh_api_json(
            workspace_root=self._root,
            endpoint=f"repos/{self._slug}/releases?per_page=100",
        )
        if isinstance(listed, Err):
            return None
        for item in as_obj_list(listed.value) or []:
            data = as_str_dict(item)
            if data is None or data.get("draft") is not True:
                continue
            if get_str(data, "tag_name") == release_id:
                return get_int(data, "id")
        return None

    def _delete_if_draft(self, release_id: str) -> None:
        # Never delete a published release: another run may own it.
        draft_id = self._find_draft_id(release_id)
        if draft_id is None:
            return
        deleted = run_gh(
            workspace_root=self._root,
            cmd=["gh", "api", "-X", "DELETE", f"repos/{self._slug}/releases/{draft_id}"],
            message=f"failed to delete draft release {release_id}",
        )
        if isinstance(deleted, Err):
            self._console.warning(f"could not delete draft release {release_id}")


def _write_assets(directory: Path, items: Iterable[tuple[str, bytes]]) -> list[Path]:
    out: list[Path] = []
    for name, data in items:
        path = directory / name
        path.write_bytes(data)
        out.append(path)
    return out


def lock_path(lock_dir: Path, release_id: str) -> Path:
    return lock_dir / ("release-" + re.sub(r"[^A-Za-z0-9._-]", "_", release_id) + ".lock")


@contextmanager
def release_lock(lock_dir: Path, release_id: str, *, timeout: float | None = None) -> Iterator[Path]:
    """Exclusive per-release publish lock.

    Raises:
        TimeoutError: If another holder keeps it longer than timeout.
    """
    lock_file = lock_path(lock_dir, release_id)
    with exclusive_lock(lock_file, timeout=timeout):
        yield lock_file


def publish_release(
    *,
    api: ReleaseApi,
    release_id: str,
    display_name: str,
    artifacts: ArtifactSet,
    lock_dir: Path,
    console: ConsoleProtocol,
    lock_timeout: float | None = None,
) -> Result[ReleaseRecord, PublishError]:
    """Upsert artifacts into release_id while holding its publish lock."""
    if len(artifacts) == 0:
        return Err(
            PublishError(
                release_id=release_id,
                kind="invalid_input",
                message="refusing to publish an empty artifact set",
            )
        )

    try:
        with release_lock(lock_dir, release_id, timeout=lock_timeout) as lock_file:
            console.print(f"publish lock held: {lock_file.name}", Style.DIM)
            result = api.upsert_release(release_id, display_name, artifacts, replace_matching=True)
    except TimeoutError:
        return Err(
            PublishError(
                release_id=release_id,
                kind="locked",
                message=f"another run is publishing {release_id}",
                hint=f"lock: {lock_path(lock_dir, release_id)}",
            )
        )

    if isinstance(result, Ok):
        console.success(f"release {release_id}: {', '.join(artifacts.names)}")
    return result
