"""Release publication: naming, the release API adapter, the release
repository, the build-date guard and the upload/rollback state machine."""

from __future__ import annotations
