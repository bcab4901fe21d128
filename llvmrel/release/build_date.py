"""Once-a-day guard for scheduled CI builds.

The release repository carries ``build-date.txt`` with the date of the
last successful nightly. A scheduled run that finds today's date there
stops before building.
"""

from __future__ import annotations

from llvmrel.core.result import Err
from llvmrel.tools.http import HttpClient

BUILD_DATE_FILE = "build-date.txt"


def should_skip(current_date: str, remote_marker: str | None) -> bool:
    """True iff the remote marker records ``current_date``."""
    if remote_marker is None:
        return False
    return remote_marker.strip() == current_date.strip()


def fetch_marker(http: HttpClient, url: str) -> str | None:
    """Fetch the marker text; any failure (404, network) reads as absent."""
    result = http.get_text(url)
    if isinstance(result, Err):
        return None
    return result.value
