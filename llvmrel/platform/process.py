"""Subprocess execution with Result-based error handling.

Every external tool the pipeline drives (git, github-release, the build
scripts, strip, patchelf, the Telegram sender) goes through ``run`` or
``run_logged``. Tests replace the module-level ``run_process`` alias in
the calling module.

    match run(["git", "rev-parse", "HEAD"], cwd=llvm_dir):
        case Ok(stdout):
            commit = stdout.strip()
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from llvmrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_logged"]

_LOG_TAIL_LINES = 20


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited non-zero, timed out or could not start.

    ``returncode`` is -1 for the last two cases. Secrets passed to
    ``run(..., secrets=...)`` are already masked in every field.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    @property
    def output(self) -> str:
        """stderr and stdout joined, for error text matching."""
        return f"{self.stderr}\n{self.stdout}"


def _mask(text: str, secrets: Sequence[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def _failure(
    cmd: Sequence[str],
    returncode: int,
    *,
    stdout: str = "",
    stderr: str = "",
    secrets: Sequence[str] = (),
) -> Err[ProcessError]:
    return Err(
        ProcessError(
            command=tuple(_mask(arg, secrets) for arg in cmd),
            returncode=returncode,
            stdout=_mask(stdout, secrets),
            stderr=_mask(stderr, secrets),
        )
    )


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
    secrets: Sequence[str] = (),
) -> Result[str, ProcessError]:
    """Run ``cmd`` capturing its output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Full environment for the child (inherits ours if None).
        timeout: Seconds before the child is killed (None: no limit).
        secrets: Strings (tokens) masked in a returned ProcessError.

    Returns:
        Ok(stdout), or Err(ProcessError).
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        # With text=True the partial output is still bytes on some versions.
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return _failure(
            cmd,
            -1,
            stdout=partial,
            stderr=f"Command timed out after {timeout}s",
            secrets=secrets,
        )
    except OSError as e:
        return _failure(cmd, -1, stderr=str(e), secrets=secrets)

    if proc.returncode != 0:
        return _failure(
            cmd, proc.returncode, stdout=proc.stdout, stderr=proc.stderr, secrets=secrets
        )
    return Ok(proc.stdout)


def run_logged(
    cmd: list[str],
    cwd: Path,
    log_path: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Run a long build step with stdout+stderr appended to ``log_path``.

    The log is the file attached to build notifications, so both streams
    go to it interleaved, each step preceded by a ``$ <command>`` line.
    On failure the error's ``stderr`` holds the last lines of the log.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with log_path.open("a", encoding="utf-8") as log:
            log.write(f"$ {' '.join(cmd)}\n")
            log.flush()
            proc = subprocess.run(
                cmd,
                cwd=str(cwd),
                env=env,
                stdout=log,
                stderr=subprocess.STDOUT,
                check=False,
            )
    except OSError as e:
        return _failure(cmd, -1, stderr=str(e))

    if proc.returncode != 0:
        return _failure(cmd, proc.returncode, stderr=_tail(log_path))
    return Ok(None)


def _tail(path: Path, lines: int = _LOG_TAIL_LINES) -> str:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""
    return "\n".join(text.splitlines()[-lines:])
