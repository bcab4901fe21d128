"""check-date command - the once-a-day guard on its own."""

from __future__ import annotations

from pathlib import Path

import typer

from llvmrel.cli.context import build_context
from llvmrel.release.build_date import fetch_marker, should_skip
from llvmrel.release.model import BuildDate
from llvmrel.release.timeouts import MARKER_FETCH_TIMEOUT_SECONDS
from llvmrel.tools.http import RealHttpClient


def check_date(
    date: str | None = typer.Option(
        None, "--date", help="Date to check, YYYY-MM-DD (default: today)", show_default=False
    ),
    marker_url: str | None = typer.Option(
        None, "--marker-url", help="build-date.txt URL", show_default=False
    ),
    workdir: Path | None = typer.Option(None, "--workdir", show_default=False),
    config: Path | None = typer.Option(None, "--config", show_default=False),
) -> None:
    """Print "skip" if today's build is already published, else "build"."""
    ctx = build_context(workdir=workdir, config_path=config)
    current = date or BuildDate.now(ctx.config.product.timezone).iso
    url = marker_url or ctx.config.repo.build_date_url

    marker = fetch_marker(RealHttpClient(timeout=MARKER_FETCH_TIMEOUT_SECONDS), url)
    typer.echo("skip" if should_skip(current, marker) else "build")
