"""Error presentation utilities.

Centralized error formatting and exit code mapping for pipeline failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from llvmrel.core.config import ConfigError
from llvmrel.core.errors import ErrorCode
from llvmrel.output.console import Style
from llvmrel.release.errors import PublishError
from llvmrel.services.build_errors import (
    BuildFailed,
    OutputMissing,
    PackageFailed,
    ToolMissing,
)

if TYPE_CHECKING:
    from llvmrel.output.console import ConsoleProtocol
    from llvmrel.services.pipeline import PipelineError

__all__ = ["print_pipeline_error", "pipeline_exit_code"]


def print_pipeline_error(error: PipelineError | ConfigError, console: ConsoleProtocol) -> None:
    match error:
        case ConfigError(message=message, path=path, hint=hint):
            console.error(f"{message} ({path})" if path else message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case ToolMissing(tool=tool, hint=hint):
            console.error(f"{tool}: missing")
            console.print(f"hint: {hint}", Style.DIM)
        case BuildFailed(step=step, returncode=rc, log_path=log_path):
            console.error(f"{step} failed (exit {rc})")
            console.print(f"log: {log_path}", Style.DIM)
        case OutputMissing(path=path, log_path=log_path, reason=reason):
            console.error(f"build output {reason}: {path}")
            console.print(f"log: {log_path}", Style.DIM)
        case PackageFailed(step=step, message=message):
            console.error(f"packaging failed at {step}: {message}")
        case PublishError(message=message, hint=hint, rolled_back=rolled_back):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
            if rolled_back:
                console.print("release repository rolled back", Style.DIM)


def pipeline_exit_code(error: PipelineError | ConfigError) -> int:
    match error:
        case ConfigError():
            return int(ErrorCode.CONFIG_ERROR)
        case ToolMissing():
            return int(ErrorCode.ENV_ERROR)
        case BuildFailed() | OutputMissing():
            return int(ErrorCode.BUILD_ERROR)
        case PackageFailed():
            return int(ErrorCode.PACKAGE_ERROR)
        case PublishError():
            return int(ErrorCode.PUBLISH_ERROR)
