from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PublishErrorKind = Literal[
    "release_query_failed",
    "release_failed",
    "repo_failed",
    "upload_exhausted",
    "rollback_failed",
]


@dataclass(frozen=True, slots=True)
class PublishError:
    kind: PublishErrorKind
    message: str
    hint: str | None = None
    # True once the release repository was restored after a failed upload.
    rolled_back: bool = False

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
