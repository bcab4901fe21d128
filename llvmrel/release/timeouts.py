from __future__ import annotations

# github-release operations (info, release, edit)
GH_RELEASE_TIMEOUT_SECONDS = 60.0

# A toolchain archive is a few hundred MB.
GH_UPLOAD_TIMEOUT_SECONDS = 30 * 60.0

# Upload retry policy
UPLOAD_MAX_ATTEMPTS = 5
UPLOAD_RETRY_DELAY_SECONDS = 10.0

# Build-date marker fetch
MARKER_FETCH_TIMEOUT_SECONDS = 15.0
