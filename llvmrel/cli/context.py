from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from llvmrel.core.config import (
    CONFIG_FILE_NAME,
    Credentials,
    PipelineConfig,
    is_ci,
    load_config,
    load_config_or_default,
    load_credentials,
)
from llvmrel.core.errors import ErrorCode
from llvmrel.core.result import Err
from llvmrel.output.console import ConsoleProtocol, RichConsole
from llvmrel.output.errors import pipeline_exit_code, print_pipeline_error


@dataclass(frozen=True, slots=True)
class CLIContext:
    workdir: Path
    config: PipelineConfig
    console: ConsoleProtocol
    ci: bool


def build_context(*, workdir: Path | None = None, config_path: Path | None = None) -> CLIContext:
    """Resolve the work directory and load configuration, exiting on error.

    An explicit ``--config`` must exist; ``llvmrel.toml`` in the work
    directory is optional.
    """
    console = RichConsole()
    try:
        root = (workdir or Path.cwd()).expanduser().resolve()
    except OSError as e:
        console.error(f"invalid --workdir: {e}")
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    if not root.is_dir():
        console.error(f"work directory not found: {root}")
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    if config_path is not None:
        loaded = load_config(config_path.expanduser())
    else:
        loaded = load_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(loaded, Err):
        print_pipeline_error(loaded.error, console)
        raise typer.Exit(code=pipeline_exit_code(loaded.error))

    return CLIContext(workdir=root, config=loaded.value, console=console, ci=is_ci(os.environ))


def require_credentials(
    ctx: CLIContext,
    *,
    branch: str | None,
    require_branch: bool = True,
    require_telegram: bool = False,
) -> Credentials:
    loaded = load_credentials(
        os.environ,
        branch=branch,
        require_branch=require_branch,
        require_telegram=require_telegram,
    )
    if isinstance(loaded, Err):
        print_pipeline_error(loaded.error, ctx.console)
        raise typer.Exit(code=pipeline_exit_code(loaded.error))
    return loaded.value
