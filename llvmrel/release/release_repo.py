from __future__ import annotations

from pathlib import Path

from llvmrel.core.config import RepoConfig
from llvmrel.core.result import Err, Ok, Result
from llvmrel.git.repository import GitError, Repository
from llvmrel.output.console import ConsoleProtocol
from llvmrel.release.build_date import BUILD_DATE_FILE
from llvmrel.release.errors import PublishError


def _repo_error(message: str, error: GitError) -> Err[PublishError]:
    return Err(PublishError(kind="repo_failed", message=message, hint=error.message or None))


def _is_missing_ref(error: GitError) -> bool:
    return "remote ref does not exist" in error.message


def _sync_clone(
    repo: Repository, *, config: RepoConfig, console: ConsoleProtocol
) -> Result[None, PublishError]:
    clean = repo.is_clean()
    if isinstance(clean, Err):
        return _repo_error("failed to check release repository status", clean.error)
    if not clean.value:
        return Err(
            PublishError(
                kind="repo_failed",
                message=f"release repository is dirty: {repo.path}",
                hint="Commit or discard the changes (or delete the clone) and retry.",
            )
        )

    main = config.main_branch
    console.command(f"git checkout {main}")
    checked_out = repo.checkout(main)
    if isinstance(checked_out, Err):
        return _repo_error(f"git checkout {main} failed", checked_out.error)

    console.command(f"git pull --ff-only origin {main}")
    pulled = repo.pull_ff(main)
    if isinstance(pulled, Err):
        return _repo_error("release repository has diverged from origin", pulled.error)
    return Ok(None)


class ReleaseRepo:
    """Local clone of the release repository.

    Holds the download links and build-date marker that accompany each
    published archive. Implements the publisher's Rollback protocol.
    """

    def __init__(self, repo: Repository, *, config: RepoConfig, console: ConsoleProtocol) -> None:
        self.repo = repo
        self.config = config
        self.console = console
        # Set once this run has committed on top of the remote main branch.
        self.committed = False

    @property
    def root(self) -> Path:
        return self.repo.path

    @classmethod
    def ensure(
        cls,
        *,
        workdir: Path,
        config: RepoConfig,
        token: str,
        console: ConsoleProtocol,
    ) -> Result[ReleaseRepo, PublishError]:
        """Clone the release repository into the workdir, or bring an
        existing clone up to date with the remote main branch, and set the
        committer identity."""
        root = workdir / config.local_dir
        repo = Repository(root)
        if repo.exists():
            synced = _sync_clone(repo, config=config, console=console)
            if isinstance(synced, Err):
                return synced
        else:
            console.command(f"git clone {config.web_url} {config.local_dir}")
            cloned = Repository.clone(config.clone_url(token), root)
            if isinstance(cloned, Err):
                return _repo_error("failed to clone release repository", cloned.error)
            repo = cloned.value

        ident = repo.configure_identity(name=config.git_user_name, email=config.git_user_email)
        if isinstance(ident, Err):
            return _repo_error("failed to configure git identity", ident.error)

        return Ok(cls(repo, config=config, console=console))

    def record_nightly(self, *, version: str, link: str, build_date: str) -> list[Path]:
        """Write ``<version>-link.txt`` and the build-date marker."""
        link_file = self.root / f"{version}-link.txt"
        marker = self.root / BUILD_DATE_FILE
        link_file.write_text(link + "\n", encoding="utf-8")
        marker.write_text(build_date + "\n", encoding="utf-8")
        return [link_file, marker]

    def record_branch(self, *, branch: str, link: str, readme: Path) -> list[Path]:
        """Write ``<branch>/link.txt`` and a copy of the quick-info README."""
        branch_dir = self.root / branch
        branch_dir.mkdir(parents=True, exist_ok=True)
        link_file = branch_dir / "link.txt"
        link_file.write_text(link + "\n", encoding="utf-8")
        readme_copy = branch_dir / "README.md"
        readme_copy.write_text(readme.read_text(encoding="utf-8"), encoding="utf-8")
        return [link_file, readme_copy]

    def commit_and_push(self, message: str) -> Result[bool, PublishError]:
        """Commit the recorded files and force-push main.

        Returns:
            Ok(True) when a commit was pushed, Ok(False) when the files were
            already up to date and nothing was committed.
        """
        main = self.config.main_branch
        self.console.command("git add .")
        added = self.repo.add_all()
        if isinstance(added, Err):
            return _repo_error("git add failed", added.error)

        staged = self.repo.has_staged_changes()
        if isinstance(staged, Err):
            return _repo_error("git diff failed", staged.error)
        if not staged.value:
            self.console.info("release repository already up to date, nothing to commit")
            return Ok(False)

        self.console.command(f"git commit -asm {message}")
        committed = self.repo.commit(message)
        if isinstance(committed, Err):
            return _repo_error("git commit failed", committed.error)
        self.committed = True

        self.console.command(f"git push -f origin {main}")
        pushed = self.repo.push(main, force=True)
        if isinstance(pushed, Err):
            return _repo_error("git push failed", pushed.error)
        return Ok(True)

    def tag_and_push(self, tag: str) -> Result[bool, PublishError]:
        """Create and push ``tag`` at HEAD.

        Returns:
            Ok(True) if the tag was created by this call, Ok(False) if it
            already existed (left untouched).
        """
        existing = self.repo.list_tags(tag)
        if isinstance(existing, Err):
            return _repo_error("git tag -l failed", existing.error)
        if tag in existing.value:
            self.console.warning(f"tag {tag} already exists, not re-tagging")
            return Ok(False)

        self.console.command(f"git tag {tag}")
        tagged = self.repo.tag(tag)
        if isinstance(tagged, Err):
            return _repo_error(f"failed to create tag: {tag}", tagged.error)

        self.console.command(f"git push -f origin {tag}")
        pushed = self.repo.push(tag, force=True)
        if isinstance(pushed, Err):
            return _repo_error(f"failed to push tag: {tag}", pushed.error)
        return Ok(True)

    def rollback(self, *, tag: str | None) -> Result[None, PublishError]:
        """Delete ``tag`` from the remote, then drop this run's commit and
        force-push main. Without a commit from this run main is left alone."""
        main = self.config.main_branch
        if tag is not None:
            self.console.command(f"git push -d origin {tag}")
            deleted = self.repo.delete_remote_tag(tag)
            if isinstance(deleted, Err) and not _is_missing_ref(deleted.error):
                return _repo_error(f"failed to delete remote tag: {tag}", deleted.error)
            # A stale local tag would stop the next run from re-tagging.
            local = self.repo.list_tags(tag)
            if isinstance(local, Ok) and tag in local.value:
                self.console.command(f"git tag -d {tag}")
                dropped = self.repo.delete_tag(tag)
                if isinstance(dropped, Err):
                    return _repo_error(f"failed to delete local tag: {tag}", dropped.error)

        if not self.committed:
            self.console.info(f"no release commit from this run, {main} left as is")
            return Ok(None)

        self.console.command("git reset --hard HEAD~1")
        reset = self.repo.reset_hard("HEAD~1")
        if isinstance(reset, Err):
            return _repo_error("git reset failed", reset.error)
        self.committed = False

        self.console.command(f"git push -f origin {main}")
        pushed = self.repo.push(main, force=True)
        if isinstance(pushed, Err):
            return _repo_error("git push failed", pushed.error)
        return Ok(None)
