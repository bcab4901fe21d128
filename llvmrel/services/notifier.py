"""Telegram notifications.

Notifications are informational only: a failed send is printed as a
warning and the run carries on.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from llvmrel.core.config import NotifyConfig
from llvmrel.core.result import Err, Ok, Result
from llvmrel.git.repository import GitError, Repository
from llvmrel.output.console import ConsoleProtocol
from llvmrel.platform.process import run as run_process
from llvmrel.release.model import BuildDate, BuildResult

_SEND_TIMEOUT_SECONDS = 120.0


class Notifier(Protocol):
    def send_text(self, message: str) -> None: ...

    def send_file(self, path: Path, caption: str) -> None: ...


class NullNotifier:
    """Used when no chat is configured."""

    def send_text(self, message: str) -> None:
        del message

    def send_file(self, path: Path, caption: str) -> None:
        del path, caption


class TelegramNotifier:
    """Sends through the ``telegram`` shell sender (HTML parse mode)."""

    def __init__(
        self,
        *,
        script: Path,
        token: str,
        chat: str,
        console: ConsoleProtocol,
    ) -> None:
        self.script = script
        self.console = console
        self._token = token
        self._chat = chat

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["TELEGRAM_TOKEN"] = self._token
        env["TELEGRAM_CHAT"] = self._chat
        return env

    def _send(self, args: list[str], *, what: str) -> None:
        result = run_process(
            [str(self.script), "-H", *args],
            cwd=self.script.parent,
            env=self._env(),
            timeout=_SEND_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            self.console.warning(f"telegram: failed to send {what} ({result.error})")

    def send_text(self, message: str) -> None:
        self._send(["-D", message], what="message")

    def send_file(self, path: Path, caption: str) -> None:
        if not path.is_file():
            self.console.warning(f"telegram: {path} missing, sending caption only")
            self.send_text(caption)
            return
        self._send(["-f", str(path), caption], what=path.name)


def ensure_telegram_sender(
    *, workdir: Path, config: NotifyConfig, console: ConsoleProtocol
) -> Result[Path, GitError]:
    """Clone the sender script next to the build (once) and return its path."""
    sender_dir = workdir / config.sender_dir
    script = sender_dir / config.sender_script
    if script.is_file():
        return Ok(script)

    console.command(f"git clone --depth=1 {config.sender_repo_url} {config.sender_dir}")
    cloned = Repository.clone(config.sender_repo_url, sender_dir, depth=1)
    if isinstance(cloned, Err):
        return cloned
    if not script.is_file():
        return Err(GitError(command="clone", message=f"{script} not found after clone"))
    return Ok(script)


def started_message(branch: str) -> str:
    return f"<b>Clang build started on <code>[ {branch} ]</code> branch</b>"


def failed_caption(branch: str) -> str:
    return f"<b>Clang build failed on <code>[ {branch} ]</code> branch</b>"


def success_caption(branch: str) -> str:
    return f"<b>Clang build successful on <code>[ {branch} ]</code> branch</b>"


def publish_failed_message(branch: str, reason: str) -> str:
    return f"<b>Clang release upload failed on <code>[ {branch} ]</code> branch</b>\n{reason}"


def summary_message(build: BuildResult, *, date: BuildDate, repo_url: str, repo_name: str) -> str:
    """Quick-info summary sent after a successful release."""
    return "\n".join(
        [
            "<b>----------------- Quick Info -----------------</b>",
            "<b>Build Date : </b>",
            f"* <code>{date.iso}</code>",
            "<b>Clang Version : </b>",
            f"* <code>{build.version}</code>",
            "<b>Binutils Version : </b>",
            f"* <code>{build.binutils_version or 'unknown'}</code>",
            "<b>Compile Based : </b>",
            f"* <a href='{build.commit_url}'>{build.commit_url}</a>",
            "<b>Push Repository : </b>",
            f"* <a href='{repo_url}'>{repo_name}</a>",
            "<b>--------------------------------------------------</b>",
        ]
    )
