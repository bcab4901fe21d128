"""Publish command - attach an existing archive to a release."""

from __future__ import annotations

from pathlib import Path

import typer

from llvmrel.cli.commands._helpers import exit_on_error, exit_with_code
from llvmrel.cli.context import build_context, require_credentials
from llvmrel.core.errors import ErrorCode
from llvmrel.git.repository import Repository
from llvmrel.release.github_release import GithubReleaseCli
from llvmrel.release.model import Artifact
from llvmrel.release.publisher import RetryPolicy, publish as publish_release
from llvmrel.release.release_repo import ReleaseRepo


def publish(
    tag: str = typer.Option(..., "--tag", help="Release tag"),
    file: Path = typer.Option(
        ..., "--file", help="Archive to upload", exists=True, dir_okay=False, readable=True
    ),
    description: str | None = typer.Option(
        None, "--description", help="Release body", show_default=False
    ),
    description_file: Path | None = typer.Option(
        None,
        "--description-file",
        help="Read the release body from a file",
        exists=True,
        dir_okay=False,
        show_default=False,
    ),
    release_repo: Path | None = typer.Option(
        None,
        "--release-repo",
        help="Local release repository clone to roll back if the upload fails",
        show_default=False,
    ),
    workdir: Path | None = typer.Option(None, "--workdir", show_default=False),
    config: Path | None = typer.Option(None, "--config", show_default=False),
) -> None:
    """Create or edit the release for TAG and upload one archive."""
    ctx = build_context(workdir=workdir, config_path=config)
    creds = require_credentials(ctx, branch=None, require_branch=False)

    if description is not None and description_file is not None:
        ctx.console.error("--description and --description-file are mutually exclusive")
        exit_with_code(int(ErrorCode.CONFIG_ERROR))
    body = description or ""
    if description_file is not None:
        body = description_file.read_text(encoding="utf-8").strip()

    rollback: ReleaseRepo | None = None
    if release_repo is not None:
        repo = Repository(release_repo.expanduser().resolve())
        if not repo.exists():
            ctx.console.error(f"not a git repository: {repo.path}")
            exit_with_code(int(ErrorCode.CONFIG_ERROR))
        rollback = ReleaseRepo(repo, config=ctx.config.repo, console=ctx.console)

    api = GithubReleaseCli(
        binary=ctx.config.publish.github_release_bin,
        owner=ctx.config.repo.owner,
        repo=ctx.config.repo.name,
        token=creds.git_token,
        cwd=ctx.workdir,
    )
    result = publish_release(
        api=api,
        tag=tag,
        artifact=Artifact(path=file, size_bytes=file.stat().st_size),
        description=body,
        console=ctx.console,
        rollback=rollback,
        policy=RetryPolicy(
            max_attempts=ctx.config.publish.max_attempts,
            delay_seconds=ctx.config.publish.retry_delay_seconds,
        ),
    )
    report = exit_on_error(result, ctx)
    verb = "created" if report.created else "updated"
    ctx.console.success(f"{verb} {report.tag} ({len(report.attempts)} upload attempt(s))")
