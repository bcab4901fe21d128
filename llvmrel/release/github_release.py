"""Release API: the protocol the publisher drives, and its adapter over the
``github-release`` command line tool."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from llvmrel.core.result import Err, Ok, Result
from llvmrel.platform.process import ProcessError
from llvmrel.platform.process import run as run_process
from llvmrel.release.errors import PublishError
from llvmrel.release.model import UploadOutcome
from llvmrel.release.timeouts import GH_RELEASE_TIMEOUT_SECONDS, GH_UPLOAD_TIMEOUT_SECONDS

__all__ = ["GithubReleaseCli", "ReleaseApi", "classify_upload"]


class ReleaseApi(Protocol):
    """Remote release operations used by the publisher."""

    def release_exists(self, tag: str) -> Result[bool, PublishError]: ...

    def create_release(self, tag: str, description: str) -> Result[None, PublishError]: ...

    def edit_release(self, tag: str, description: str) -> Result[None, PublishError]: ...

    def upload_asset(self, tag: str, name: str, path: Path, *, overwrite: bool) -> UploadOutcome:
        """Upload one file. Never raises; transport errors are ``"failure"``."""
        ...


_ALREADY_EXISTS_MARKERS = ("already_exists", "already exists")
_MISSING_RELEASE_MARKERS = ("could not find the release", "release not found", "404")


def classify_upload(result: Result[str, ProcessError]) -> UploadOutcome:
    """Map a github-release upload invocation to an upload outcome.

    The tool reports a duplicate asset as a validation error mentioning
    ``already_exists``, on stdout or stderr depending on the version, and
    sometimes with a zero exit status.
    """
    match result:
        case Ok(stdout):
            if any(m in stdout.lower() for m in _ALREADY_EXISTS_MARKERS):
                return "exists"
            return "success"
        case Err(error):
            if any(m in error.output.lower() for m in _ALREADY_EXISTS_MARKERS):
                return "exists"
            return "failure"


class GithubReleaseCli:
    """ReleaseApi implementation driving the ``github-release`` binary."""

    def __init__(
        self,
        *,
        binary: str,
        owner: str,
        repo: str,
        token: str,
        cwd: Path,
    ) -> None:
        self.binary = binary
        self.owner = owner
        self.repo = repo
        self.cwd = cwd
        self._token = token

    def _cmd(self, action: str, tag: str, *extra: str) -> list[str]:
        return [
            self.binary,
            action,
            "--security-token",
            self._token,
            "--user",
            self.owner,
            "--repo",
            self.repo,
            "--tag",
            tag,
            *extra,
        ]

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["GITHUB_TOKEN"] = self._token
        return env

    def _hint(self, error: ProcessError) -> str | None:
        text = error.stderr.strip() or error.stdout.strip()
        return text.replace(self._token, "***") if text else None

    def release_exists(self, tag: str) -> Result[bool, PublishError]:
        result = run_process(
            self._cmd("info", tag),
            cwd=self.cwd,
            env=self._env(),
            timeout=GH_RELEASE_TIMEOUT_SECONDS,
            secrets=(self._token,),
        )
        match result:
            case Ok(_):
                return Ok(True)
            case Err(error):
                if any(m in error.output.lower() for m in _MISSING_RELEASE_MARKERS):
                    return Ok(False)
                return Err(
                    PublishError(
                        kind="release_query_failed",
                        message=f"failed to query release: {tag}",
                        hint=self._hint(error),
                    )
                )

    def create_release(self, tag: str, description: str) -> Result[None, PublishError]:
        return self._write(
            self._cmd("release", tag, "--name", tag, "--description", description),
            message=f"failed to create release: {tag}",
        )

    def edit_release(self, tag: str, description: str) -> Result[None, PublishError]:
        return self._write(
            self._cmd("edit", tag, "--description", description),
            message=f"failed to edit release: {tag}",
        )

    def upload_asset(self, tag: str, name: str, path: Path, *, overwrite: bool) -> UploadOutcome:
        extra = ["--name", name, "--file", str(path)]
        if overwrite:
            extra.append("--replace")
        result = run_process(
            self._cmd("upload", tag, *extra),
            cwd=self.cwd,
            env=self._env(),
            timeout=GH_UPLOAD_TIMEOUT_SECONDS,
            secrets=(self._token,),
        )
        return classify_upload(result)

    def _write(self, cmd: list[str], *, message: str) -> Result[None, PublishError]:
        result = run_process(
            cmd,
            cwd=self.cwd,
            env=self._env(),
            timeout=GH_RELEASE_TIMEOUT_SECONDS,
            secrets=(self._token,),
        )
        if isinstance(result, Err):
            return Err(
                PublishError(kind="release_failed", message=message, hint=self._hint(result.error))
            )
        return Ok(None)
