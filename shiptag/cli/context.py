from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from shiptag.core.config import CONFIG_FILENAME, Config, load_config_or_default
from shiptag.core.errors import ErrorCode
from shiptag.core.result import Err
from shiptag.output.console import ConsoleProtocol, RichConsole

ROOT_ENV = "SHIPTAG_ROOT"
CONFIG_ENV = "SHIPTAG_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def build_context() -> CLIContext:
    root = Path(os.environ.get(ROOT_ENV) or Path.cwd()).resolve()
    config_path = Path(os.environ.get(CONFIG_ENV) or root / CONFIG_FILENAME)

    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(root=root, config=config_result.value, console=RichConsole())
