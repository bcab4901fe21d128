"""Release publication state machine.

publish() makes sure one archive ends up attached to the release for a
tag, or that nothing this run pushed is left behind:

    query tag -> create | edit -> upload (bounded retry) -> done
                                         \\-> exhausted -> rollback

An upload rejected because the asset already exists counts as success.
Any other upload failure is retried after a fixed delay, up to
``RetryPolicy.max_attempts`` uploads in total, never more than five.
"""

from __future__ import annotations

from dataclasses import dataclass
from time import sleep
from typing import Protocol

from llvmrel.core.result import Err, Ok, Result
from llvmrel.output.console import ConsoleProtocol, Style
from llvmrel.release.errors import PublishError
from llvmrel.release.github_release import ReleaseApi
from llvmrel.release.model import Artifact, PublishReport, ReleaseTag, UploadAttempt
from llvmrel.release.timeouts import UPLOAD_MAX_ATTEMPTS, UPLOAD_RETRY_DELAY_SECONDS

__all__ = ["RetryPolicy", "Rollback", "publish", "resolve_tag"]


class Rollback(Protocol):
    """Undo the release repository changes pushed for this run."""

    def rollback(self, *, tag: str | None) -> Result[None, PublishError]:
        """Delete ``tag`` from the remote (when given), drop the commit this
        run pushed and force-push the main branch."""
        ...


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = UPLOAD_MAX_ATTEMPTS
    delay_seconds: float = UPLOAD_RETRY_DELAY_SECONDS


def resolve_tag(api: ReleaseApi, tag: str) -> Result[ReleaseTag, PublishError]:
    exists = api.release_exists(tag)
    if isinstance(exists, Err):
        return exists
    return Ok(ReleaseTag(name=tag, exists=exists.value))


def publish(
    *,
    api: ReleaseApi,
    tag: str,
    artifact: Artifact,
    description: str,
    console: ConsoleProtocol,
    rollback: Rollback | None = None,
    policy: RetryPolicy = RetryPolicy(),
) -> Result[PublishReport, PublishError]:
    """Attach ``artifact`` to the release ``tag``.

    Args:
        api: Remote release operations.
        tag: Release tag name.
        artifact: The archive to upload.
        description: Release body (build metadata).
        console: Progress output.
        rollback: Release repository to restore if every upload fails.
        policy: Upload attempt bound and delay between attempts.

    Returns:
        Ok(PublishReport) once the asset is attached (or already was).
        Err(PublishError) when the release could not be prepared, or with
        kind ``upload_exhausted`` after rollback.
    """
    resolved = resolve_tag(api, tag)
    if isinstance(resolved, Err):
        return resolved
    release = resolved.value

    if release.exists:
        console.print(f"release {tag} exists, updating description", Style.DIM)
        prepared = api.edit_release(tag, description)
    else:
        console.print(f"creating release {tag}", Style.DIM)
        prepared = api.create_release(tag, description)
    if isinstance(prepared, Err):
        return prepared

    attempts: list[UploadAttempt] = []
    overwrite = release.exists
    max_attempts = min(max(1, policy.max_attempts), UPLOAD_MAX_ATTEMPTS)

    for number in range(1, max_attempts + 1):
        console.print(f"upload {artifact.name} (attempt {number}/{max_attempts})", Style.DIM)
        outcome = api.upload_asset(tag, artifact.name, artifact.path, overwrite=overwrite)
        attempts.append(UploadAttempt(attempt_number=number, outcome=outcome))

        if outcome == "success":
            console.success(f"uploaded {artifact.name} to {tag}")
            return Ok(PublishReport(tag=tag, created=not release.exists, attempts=tuple(attempts)))
        if outcome == "exists":
            console.info(f"{artifact.name} already attached to {tag}")
            return Ok(PublishReport(tag=tag, created=not release.exists, attempts=tuple(attempts)))

        overwrite = True
        if number < max_attempts:
            console.warning(f"upload failed, retrying in {policy.delay_seconds:g}s")
            sleep(policy.delay_seconds)

    console.error(f"upload of {artifact.name} failed {max_attempts} times")
    return _roll_back(tag=tag, created=not release.exists, rollback=rollback, console=console)


def _roll_back(
    *,
    tag: str,
    created: bool,
    rollback: Rollback | None,
    console: ConsoleProtocol,
) -> Err[PublishError]:
    message = f"upload to {tag} failed after all attempts"
    if rollback is None:
        return Err(
            PublishError(
                kind="upload_exhausted",
                message=message,
                hint="No release repository was given; nothing was rolled back.",
            )
        )

    console.print(f"rolling back release repository ({tag})", Style.DIM)
    # A pre-existing tag belongs to an earlier, complete release.
    undone = rollback.rollback(tag=tag if created else None)
    if isinstance(undone, Err):
        return Err(
            PublishError(
                kind="rollback_failed",
                message=f"{message}; rollback failed: {undone.error.message}",
                hint=undone.error.hint,
            )
        )

    return Err(PublishError(kind="upload_exhausted", message=message, rolled_back=True))
