from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ToolMissing:
    tool: str
    hint: str


@dataclass(frozen=True, slots=True)
class BuildFailed:
    step: str
    returncode: int
    log_path: Path


@dataclass(frozen=True, slots=True)
class OutputMissing:
    path: Path
    log_path: Path
    reason: str = "not found"


@dataclass(frozen=True, slots=True)
class PackageFailed:
    step: str
    message: str


BuildError = ToolMissing | BuildFailed | OutputMissing
