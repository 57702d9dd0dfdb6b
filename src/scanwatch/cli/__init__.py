"""CLI entry point — registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="scanwatch",
    help="scanwatch - GitHub code scanning results for the commit you have checked out",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]scanwatch[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        is_eager=True,
        callback=_show_version,
    ),
) -> None:
    """GitHub code scanning results for the commit you have checked out."""


# Import subcommands to register them
from .status import status as _status  # noqa: F401, E402
from .report import report as _report  # noqa: F401, E402
from .watch import watch as _watch  # noqa: F401, E402


def main() -> None:
    app()
