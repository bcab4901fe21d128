"""Exit codes for the release pipeline.

Each fatal failure class maps to one stable process exit code so CI logs
tell at a glance which stage stopped the run.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: Success (published, or skipped because already built today)
    - 1: Configuration error (missing credentials, invalid config file)
    - 2: Environment error (missing external tools)
    - 3: Build error (no usable clang binary)
    - 4: Package error (archive could not be produced)
    - 5: Publish error (release API or release repository failure)
    """

    OK = 0
    CONFIG_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    PACKAGE_ERROR = 4
    PUBLISH_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
