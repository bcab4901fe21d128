from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from llvmrel.core.config import Credentials, PipelineConfig
from llvmrel.release.model import BuildDate, ReleaseFlavor


@dataclass(frozen=True, slots=True)
class RunContext:
    """Everything one pipeline run needs, passed explicitly to each stage."""

    workdir: Path
    config: PipelineConfig
    credentials: Credentials
    flavor: ReleaseFlavor
    date: BuildDate
    ci: bool = False

    @property
    def install_dir(self) -> Path:
        return self.workdir / self.config.build.install_dir

    @property
    def llvm_dir(self) -> Path:
        return self.workdir / self.config.build.llvm_source_dir

    @property
    def log_path(self) -> Path:
        return self.workdir / self.config.build.log_file

    @property
    def date_stamp(self) -> str | None:
        """Date suffix for tag and archive names (nightly releases only)."""
        return self.date.stamp if self.flavor == "nightly" else None
