from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

# nightly: date-stamped tag, build-date guard, git tag pushed by us.
# branch: one rolling release per clang version, link file per LLVM branch.
ReleaseFlavor = Literal["nightly", "branch"]

UploadOutcome = Literal["success", "exists", "failure"]

LLVM_COMMIT_URL = "https://github.com/llvm/llvm-project/commit/{sha}"


@dataclass(frozen=True, slots=True)
class BuildResult:
    """What the external build produced. Created once per run."""

    success: bool
    version: str
    source_commit: str
    output_dir: Path
    binutils_version: str | None = None

    @property
    def short_commit(self) -> str:
        return self.source_commit[:8]

    @property
    def commit_url(self) -> str:
        return LLVM_COMMIT_URL.format(sha=self.short_commit)


@dataclass(frozen=True, slots=True)
class Artifact:
    """The single archive uploaded as a release asset."""

    path: Path
    size_bytes: int
    sha256: str | None = None

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class ReleaseTag:
    name: str
    exists: bool


@dataclass(frozen=True, slots=True)
class UploadAttempt:
    attempt_number: int
    outcome: UploadOutcome
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class PublishReport:
    tag: str
    created: bool
    attempts: tuple[UploadAttempt, ...]

    @property
    def final_outcome(self) -> UploadOutcome:
        return self.attempts[-1].outcome if self.attempts else "failure"


@dataclass(frozen=True, slots=True)
class ReleaseNames:
    archive: str
    tag: str


def release_names(*, product: str, version: str, date_stamp: str | None = None) -> ReleaseNames:
    """Archive and tag names: ``<Product>-<Version>[-<Date>]``.

    >>> release_names(product="Foo", version="1.0.0").tag
    'Foo-1.0.0-release'
    """
    base = f"{product}-{version}"
    if date_stamp:
        base = f"{base}-{date_stamp}"
    return ReleaseNames(archive=f"{base}.tar.gz", tag=f"{base}-release")


@dataclass(frozen=True, slots=True)
class BuildDate:
    """The run's date in the product time zone, in both textual forms."""

    iso: str  # 2026-10-19, build-date marker and README
    stamp: str  # 20261019, tags and commit messages

    @classmethod
    def now(cls, timezone: str, *, clock: datetime | None = None) -> BuildDate:
        tz = ZoneInfo(timezone)
        moment = clock.astimezone(tz) if clock is not None else datetime.now(tz)
        return cls(iso=moment.strftime("%Y-%m-%d"), stamp=moment.strftime("%Y%m%d"))
