"""Git repository abstraction.

Repository wraps the handful of git operations the release pipeline needs:
cloning the release repository, committing link files, tagging, pushing,
and the destructive pair used for rollback (remote tag deletion and hard
reset). All operations return Result types.

Usage:
    repo = Repository(Path("rel_repo"))
    match repo.commit("WeebX-Clang-17.0.0: 20261019"):
        case Ok(_):
            ...
        case Err(e):
            print(f"commit failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from llvmrel.core.result import Err, Ok, Result
from llvmrel.platform.process import ProcessError
from llvmrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_GIT_CLONE_TIMEOUT_SECONDS = 15 * 60.0

_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "ls-remote"})

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "push -f")
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """A local git checkout.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def clone(
        cls, url: str, dest: Path, *, depth: int | None = None
    ) -> Result[Repository, GitError]:
        """Clone ``url`` into ``dest``.

        The URL may embed a token; it never appears in the returned error.
        """
        cmd = ["git", "clone"]
        if depth is not None:
            cmd += [f"--depth={depth}"]
        cmd += [url, str(dest)]

        dest.parent.mkdir(parents=True, exist_ok=True)
        result = run_process(cmd, cwd=dest.parent, timeout=_GIT_CLONE_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                GitError(
                    command="clone",
                    message=_redact(result.error.stderr.strip(), url) or "clone failed",
                    returncode=result.error.returncode,
                )
            )
        return Ok(cls(dest))

    def exists(self) -> bool:
        return (self.path / ".git").exists()

    def head_sha(self) -> Result[str, GitError]:
        """Full sha of HEAD."""
        return self._checked(["rev-parse", "HEAD"]).map(str.strip)

    def configure_identity(self, *, name: str, email: str) -> Result[None, GitError]:
        """Set the committer identity for this repository only."""
        for key, value in (("user.name", name), ("user.email", email)):
            result = self._checked(["config", key, value])
            if isinstance(result, Err):
                return result
        return Ok(None)

    def add_all(self) -> Result[None, GitError]:
        return self._checked(["add", "."]).map(lambda _: None)

    def is_clean(self) -> Result[bool, GitError]:
        """True when neither the index nor the working tree has changes."""
        return self._checked(["status", "--porcelain"]).map(lambda out: out.strip() == "")

    def has_staged_changes(self) -> Result[bool, GitError]:
        """True when the index differs from HEAD."""
        result = self._run(["diff", "--cached", "--quiet"])
        match result:
            case Ok(_):
                return Ok(False)
            case Err(e) if e.returncode == 1:
                return Ok(True)
            case Err(e):
                return Err(
                    GitError(
                        command="diff --cached",
                        message=e.stderr.strip() or "git diff failed",
                        returncode=e.returncode,
                    )
                )

    def checkout(self, ref: str) -> Result[None, GitError]:
        return self._checked(["checkout", ref]).map(lambda _: None)

    def pull_ff(self, branch: str, *, remote: str = "origin") -> Result[str, GitError]:
        """Pull ``branch`` with fast-forward only.

        Returns:
            Ok(output) on success
            Err(GitError) when the local branch has diverged or the remote is unreachable
        """
        return self._checked(["pull", "--ff-only", remote, branch]).map(str.strip)

    def commit(self, message: str) -> Result[None, GitError]:
        """Commit all tracked changes with a signed-off-by trailer."""
        return self._checked(["commit", "-asm", message]).map(lambda _: None)

    def tag(self, name: str, message: str | None = None) -> Result[None, GitError]:
        """Create an annotated tag at HEAD."""
        return self._checked(["tag", name, "-m", message or name]).map(lambda _: None)

    def list_tags(self, pattern: str | None = None) -> Result[list[str], GitError]:
        args = ["tag", "-l"]
        if pattern:
            args.append(pattern)
        return self._checked(args).map(
            lambda out: [ln.strip() for ln in out.splitlines() if ln.strip()]
        )

    def push(
        self, ref: str, *, remote: str = "origin", force: bool = False
    ) -> Result[None, GitError]:
        args = ["push"]
        if force:
            args.append("-f")
        args += [remote, ref]
        return self._checked(args).map(lambda _: None)

    def delete_remote_tag(self, name: str, *, remote: str = "origin") -> Result[None, GitError]:
        return self._checked(["push", "-d", remote, name]).map(lambda _: None)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        return self._checked(["tag", "-d", name]).map(lambda _: None)

    def reset_hard(self, ref: str) -> Result[None, GitError]:
        return self._checked(["reset", "--hard", ref]).map(lambda _: None)

    def _checked(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=" ".join(args[:2]),
                        message=e.stderr.strip() or e.stdout.strip() or f"git {args[0]} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def _redact(text: str, url: str) -> str:
    if "@" not in url:
        return text
    secret = url.split("://", 1)[-1].split("@", 1)[0]
    return text.replace(secret, "***") if secret else text
