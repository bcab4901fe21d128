"""Run command - full build, package and publish pipeline."""

from __future__ import annotations

from pathlib import Path

import typer

from llvmrel.cli.commands._helpers import exit_on_error
from llvmrel.cli.commands.flavor import Flavor
from llvmrel.cli.context import CLIContext, build_context, require_credentials
from llvmrel.core.config import Credentials
from llvmrel.core.result import Err
from llvmrel.release.github_release import GithubReleaseCli
from llvmrel.release.model import BuildDate
from llvmrel.release.timeouts import MARKER_FETCH_TIMEOUT_SECONDS
from llvmrel.services.context import RunContext
from llvmrel.services.notifier import (
    Notifier,
    NullNotifier,
    TelegramNotifier,
    ensure_telegram_sender,
)
from llvmrel.services.pipeline import run_pipeline
from llvmrel.tools.http import RealHttpClient


def _notifier(ctx: CLIContext, creds: Credentials) -> Notifier:
    if not (creds.telegram_token and creds.telegram_chat):
        ctx.console.info("TELEGRAM_TOKEN/TELEGRAM_CHAT not set, notifications disabled")
        return NullNotifier()

    script = ensure_telegram_sender(
        workdir=ctx.workdir, config=ctx.config.notify, console=ctx.console
    )
    if isinstance(script, Err):
        ctx.console.warning(f"telegram sender unavailable: {script.error.message}")
        return NullNotifier()

    return TelegramNotifier(
        script=script.value,
        token=creds.telegram_token,
        chat=creds.telegram_chat,
        console=ctx.console,
    )


def run(
    branch: str | None = typer.Option(
        None, "--branch", help="LLVM branch to build (default: $BRANCH)", show_default=False
    ),
    flavor: Flavor = typer.Option(Flavor.nightly, "--flavor", help="Release flavour"),
    workdir: Path | None = typer.Option(
        None, "--workdir", help="Build directory (default: cwd)", show_default=False
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <workdir>/llvmrel.toml)", show_default=False
    ),
) -> None:
    """Build the toolchain, package it and publish the release."""
    ctx = build_context(workdir=workdir, config_path=config)
    creds = require_credentials(
        ctx,
        branch=branch,
        require_telegram=flavor == Flavor.branch,
    )

    run_ctx = RunContext(
        workdir=ctx.workdir,
        config=ctx.config,
        credentials=creds,
        flavor="nightly" if flavor == Flavor.nightly else "branch",
        date=BuildDate.now(ctx.config.product.timezone),
        ci=ctx.ci,
    )
    api = GithubReleaseCli(
        binary=ctx.config.publish.github_release_bin,
        owner=ctx.config.repo.owner,
        repo=ctx.config.repo.name,
        token=creds.git_token,
        cwd=ctx.workdir,
    )

    result = run_pipeline(
        run_ctx,
        api=api,
        http=RealHttpClient(timeout=MARKER_FETCH_TIMEOUT_SECONDS),
        notifier=_notifier(ctx, creds),
        console=ctx.console,
    )
    report = exit_on_error(result, ctx)
    if report.skipped or report.names is None:
        return
    ctx.console.success(f"released {report.names.tag}")
