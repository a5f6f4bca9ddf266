"""Version watcher: find the version in the manifest and derive the tag name.

Only a line that starts with ``version = "<value>"`` counts, which is how
Cargo writes the package version. Dependency versions inside inline tables
(``serde = { version = "1" }``) never match because the pattern is anchored
at the start of the line.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from shiptag.core.result import Err, Ok, Result
from shiptag.services.release.errors import ExtractionError
from shiptag.services.release.model import ManifestVersion

_VERSION_LINE = re.compile(r'^version\s*=\s*"([^"\n]*)"', re.MULTILINE)


def tag_name_for(version: str, *, prefix: str = "v") -> str:
    return f"{prefix}{version}"


def extract_version(
    text: str,
    *,
    manifest: Path,
    prefix: str = "v",
) -> Result[ManifestVersion, ExtractionError]:
    match = _VERSION_LINE.search(text)
    if match is None:
        return Err(
            ExtractionError(
                manifest=manifest,
                message=f"version could not be extracted from {manifest.name}",
                hint='Expected a line like: version = "1.2.3"',
            )
        )

    version = match.group(1).strip()
    if not version:
        return Err(
            ExtractionError(
                manifest=manifest,
                message=f"empty version in {manifest.name}",
                hint='Expected a line like: version = "1.2.3"',
            )
        )

    return Ok(
        ManifestVersion(
            manifest=manifest,
            version=version,
            tag_name=tag_name_for(version, prefix=prefix),
        )
    )


def read_manifest(path: Path, *, prefix: str = "v") -> Result[ManifestVersion, ExtractionError]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ExtractionError(manifest=path, message=f"manifest not found: {path}"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ExtractionError(manifest=path, message=f"cannot read manifest {path}: {e}"))

    return extract_version(text, manifest=path, prefix=prefix)


def _normalize(path: str) -> str:
    p = path.strip().replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return str(PurePosixPath(p)) if p else ""


def manifest_changed(changed_paths: Iterable[str], manifest: str) -> bool:
    """True if the change event's diff includes the manifest path.

    Paths are compared repository-relative, so ``./Cargo.toml`` and
    ``Cargo.toml`` are the same file but ``crates/x/Cargo.toml`` is not.
    """
    target = _normalize(manifest)
    return any(_normalize(p) == target for p in changed_paths)
