from __future__ import annotations

import typer

from llvmrel import __version__
from llvmrel.cli.commands.check_date_cmd import check_date
from llvmrel.cli.commands.package_cmd import package
from llvmrel.cli.commands.publish_cmd import publish
from llvmrel.cli.commands.run_cmd import run


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command()(publish)
app.command()(package)
app.command("check-date")(check_date)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
) -> None:
    del version


def main() -> None:
    app()
