from __future__ import annotations

from enum import StrEnum


class Flavor(StrEnum):
    """Release flavour, as typed on the command line."""

    nightly = "nightly"
    branch = "branch"
