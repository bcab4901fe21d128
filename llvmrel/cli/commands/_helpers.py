"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from llvmrel.core.result import Err, Result
from llvmrel.output.errors import pipeline_exit_code, print_pipeline_error

if TYPE_CHECKING:
    from llvmrel.cli.context import CLIContext
    from llvmrel.core.config import ConfigError
    from llvmrel.services.pipeline import PipelineError

T = TypeVar("T")
E = TypeVar("E", bound="PipelineError | ConfigError")


def exit_on_error(result: Result[T, E], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its code.

    Replaces the common pattern:
        if isinstance(result, Err):
            print_pipeline_error(result.error, ctx.console)
            raise typer.Exit(code=pipeline_exit_code(result.error))
        value = result.value
    """
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        exit_with_code(pipeline_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
