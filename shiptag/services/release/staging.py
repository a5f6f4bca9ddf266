"""Run-scoped artifact staging area.

Build jobs never talk to each other; they only write here. Layout:

    <root>/<run id>/<artifact name>/<artifact name>

which matches what a CI "download all artifacts" step produces. Each name can
be written once per run: the per-name directory is the claim, so two jobs
that compute the same name cannot both succeed.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from uuid import uuid4

from shiptag.core.result import Err, Ok, Result
from shiptag.platform.files import atomic_write_bytes
from shiptag.services.release.errors import StagingError

_VALID_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def new_run_id() -> str:
    return f"run-{uuid4().hex[:12]}"


class ArtifactStaging:
    def __init__(self, root: Path, run_id: str) -> None:
        self.root = root
        self.run_id = run_id

    @property
    def run_dir(self) -> Path:
        return self.root / self.run_id

    def upload(self, name: str, data: bytes) -> Result[Path, StagingError]:
        if not _VALID_NAME.match(name):
            return Err(StagingError(name=name, message=f"invalid artifact name: {name!r}"))

        slot = self.run_dir / name
        try:
            slot.parent.mkdir(parents=True, exist_ok=True)
            slot.mkdir()
        except FileExistsError:
            return Err(
                StagingError(
                    name=name,
                    message=f"artifact already staged in this run: {name}",
                    hint="Each build target must produce a distinct artifact name.",
                )
            )
        except OSError as e:
            return Err(StagingError(name=name, message=f"cannot create staging slot: {e}"))

        dest = slot / name
        try:
            atomic_write_bytes(dest, data)
        except OSError as e:
            shutil.rmtree(slot, ignore_errors=True)
            return Err(StagingError(name=name, message=f"failed to stage {name}: {e}"))
        return Ok(dest)

    def upload_file(self, name: str, path: Path) -> Result[Path, StagingError]:
        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(StagingError(name=name, message=f"cannot read {path}: {e}"))
        return self.upload(name, data)

    def download_all(self) -> Result[dict[str, bytes], StagingError]:
        """Every artifact staged in this run, by name (sorted)."""
        out: dict[str, bytes] = {}
        if not self.run_dir.is_dir():
            return Ok(out)

        for slot in sorted(p for p in self.run_dir.iterdir() if p.is_dir()):
            blob = slot / slot.name
            try:
                out[slot.name] = blob.read_bytes()
            except FileNotFoundError:
                return Err(
                    StagingError(name=slot.name, message=f"staged artifact is incomplete: {slot.name}")
                )
            except OSError as e:
                return Err(StagingError(name=slot.name, message=f"cannot read {blob}: {e}"))
        return Ok(out)

    def discard(self) -> None:
        shutil.rmtree(self.run_dir, ignore_errors=True)
