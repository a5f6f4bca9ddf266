"""Typed configuration loading and access.

This module provides dataclasses for the ``shiptag.toml`` structure. Every
field has a default that reproduces the reference project (the ``devbox``
Rust CLI released to ``latest``), so a project without a config file works
out of the box.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "BuildConfig",
    "Config",
    "ConfigError",
    "CONFIG_FILENAME",
    "DEFAULT_TARGETS",
    "ProjectConfig",
    "ReleaseConfig",
    "TaggingConfig",
    "TargetConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "shiptag.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """One platform the binary is built for.

    ``os`` and ``arch`` make up the artifact name; ``triple`` is passed to the
    toolchain as ``--target`` when set.
    """

    os: str
    arch: str
    triple: str | None = None
    cargo_args: tuple[str, ...] = ()


DEFAULT_TARGETS: tuple[TargetConfig, ...] = (
    TargetConfig(os="linux", arch="amd64", triple="x86_64-unknown-linux-gnu"),
    TargetConfig(os="macos", arch="arm64", triple="aarch64-apple-darwin"),
)


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    binary: str = "devbox"
    manifest: str = "Cargo.toml"
    remote: str = "origin"
    # owner/name, passed to gh as --repo. None lets gh infer it from the checkout.
    repo: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    id: str = "latest"
    name: str = "Latest Release"
    lock_timeout: float = 10 * 60.0


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Fan-out settings.

    ``max_workers`` of 0 means one worker per target.
    """

    max_workers: int = 0
    staging_dir: str = ".shiptag/staging"
    lock_dir: str = ".shiptag/locks"


@dataclass(frozen=True, slots=True)
class TaggingConfig:
    prefix: str = "v"
    message: str = "Release version {version}"
    rollback_on_push_failure: bool = True


def _default_targets() -> tuple[TargetConfig, ...]:
    return DEFAULT_TARGETS


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    tagging: TaggingConfig = field(default_factory=TaggingConfig)
    targets: tuple[TargetConfig, ...] = field(default_factory=_default_targets)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If a ``[[targets]]`` entry or a field is malformed.
        """
        project: StrDict = get_table(data, "project") or {}
        release: StrDict = get_table(data, "release") or {}
        build: StrDict = get_table(data, "build") or {}
        tagging: StrDict = get_table(data, "tagging") or {}

        max_workers = get_int(build, "max_workers")
        if max_workers is not None and max_workers < 0:
            raise ValueError("build.max_workers must be >= 0")

        message = get_str(tagging, "message") or "Release version {version}"
        if "{version}" not in message:
            raise ValueError("tagging.message must contain {version}")

        rollback = get_bool(tagging, "rollback_on_push_failure")
        # An empty prefix is allowed, so get_str() does not fit here.
        prefix_obj = tagging.get("prefix")
        prefix = prefix_obj if isinstance(prefix_obj, str) else "v"

        return cls(
            project=ProjectConfig(
                binary=get_str(project, "binary") or "devbox",
                manifest=get_str(project, "manifest") or "Cargo.toml",
                remote=get_str(project, "remote") or "origin",
                repo=get_str(project, "repo"),
            ),
            release=ReleaseConfig(
                id=get_str(release, "id") or "latest",
                name=get_str(release, "name") or "Latest Release",
                lock_timeout=get_float(release, "lock_timeout") or 10 * 60.0,
            ),
            build=BuildConfig(
                max_workers=max_workers or 0,
                staging_dir=get_str(build, "staging_dir") or ".shiptag/staging",
                lock_dir=get_str(build, "lock_dir") or ".shiptag/locks",
            ),
            tagging=TaggingConfig(
                prefix=prefix,
                message=message,
                rollback_on_push_failure=True if rollback is None else rollback,
            ),
            targets=_parse_targets(data),
        )


def _parse_targets(data: Mapping[str, object]) -> tuple[TargetConfig, ...]:
    raw = get_list(data, "targets")
    if raw is None:
        return DEFAULT_TARGETS

    out: list[TargetConfig] = []
    for index, item in enumerate(raw):
        table = as_str_dict(item)
        if table is None:
            raise ValueError(f"targets[{index}] must be a table")
        os_name = get_str(table, "os")
        arch = get_str(table, "arch")
        if os_name is None or arch is None:
            raise ValueError(f"targets[{index}] requires 'os' and 'arch'")
        cargo_args = get_str_list(table, "cargo_args")
        if "cargo_args" in table and cargo_args is None:
            raise ValueError(f"targets[{index}].cargo_args must be a list of strings")
        out.append(
            TargetConfig(
                os=os_name,
                arch=arch,
                triple=get_str(table, "triple"),
                cargo_args=tuple(cargo_args or ()),
            )
        )
    return tuple(out)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to shiptag.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from file, or the defaults when the file does not exist.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
