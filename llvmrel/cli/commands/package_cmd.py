"""Package command - archive an already built install tree."""

from __future__ import annotations

from pathlib import Path

import typer

from llvmrel.cli.commands._helpers import exit_on_error
from llvmrel.cli.commands.flavor import Flavor
from llvmrel.cli.context import build_context
from llvmrel.output.console import Style
from llvmrel.release.model import BuildDate, BuildResult, release_names
from llvmrel.services.packager import package_toolchain


def package(
    install_dir: Path = typer.Option(
        ..., "--install-dir", help="Toolchain install tree", exists=True, file_okay=False
    ),
    version: str = typer.Option(..., "--version", help="Clang version, e.g. 18.0.0"),
    commit: str = typer.Option(..., "--commit", help="llvm-project commit the build used"),
    binutils_version: str | None = typer.Option(
        None, "--binutils-version", show_default=False
    ),
    flavor: Flavor = typer.Option(Flavor.nightly, "--flavor", help="Release flavour"),
    out: Path | None = typer.Option(
        None, "--out", help="Output directory (default: workdir)", show_default=False
    ),
    workdir: Path | None = typer.Option(None, "--workdir", show_default=False),
    config: Path | None = typer.Option(None, "--config", show_default=False),
) -> None:
    """Strip, fix rpaths and tar an install tree into the release archive."""
    ctx = build_context(workdir=workdir, config_path=config)
    date = BuildDate.now(ctx.config.product.timezone)
    names = release_names(
        product=ctx.config.product.name,
        version=version,
        date_stamp=date.stamp if flavor == Flavor.nightly else None,
    )
    build = BuildResult(
        success=True,
        version=version,
        source_commit=commit,
        output_dir=install_dir.expanduser().resolve(),
        binutils_version=binutils_version,
    )

    result = package_toolchain(
        build=build,
        archive_name=names.archive,
        out_dir=(out or ctx.workdir).expanduser().resolve(),
        date=date,
        policy=ctx.config.publish.postprocess,
        console=ctx.console,
    )
    pkg = exit_on_error(result, ctx)
    ctx.console.print(str(pkg.artifact.path))
    ctx.console.print(f"sha256 {pkg.artifact.sha256}", Style.DIM)
    ctx.console.print(f"tag {names.tag}", Style.DIM)
