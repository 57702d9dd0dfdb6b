"""``scanwatch report`` — write the SARIF log for the current checkout."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from ..exceptions import ScanwatchError
from . import app
from ._common import console, start_session
from .status import run_once


@app.command()
def report(
    path: Path = typer.Argument(Path("."), help="Working tree to inspect", file_okay=False),
    output: Path = typer.Option(Path("results.sarif"), "-o", "--output", help="Where to write the SARIF log", dir_okay=False),
    augmented: bool = typer.Option(False, "--augmented", help="Write the log with resolved rule metadata attached"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    token: Optional[str] = typer.Option(None, "--token", help="Access token (default: $GITHUB_TOKEN, then gh)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Download the report of the matched analysis."""
    settings = start_session(path, config, verbose)
    try:
        snapshot = asyncio.run(run_once(settings, token))
    except ScanwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if snapshot is None:
        console.print("[yellow]Code scanning sync is inactive for this directory[/yellow] (see log)")
        raise typer.Exit(1)
    if not snapshot.reports:
        console.print(snapshot.status_message or "No analysis matches the checked-out commit.", markup=False)
        raise typer.Exit(1)

    installed = snapshot.reports[0]
    if augmented or not installed.text:
        output.write_text(json.dumps(installed.body, indent=2), encoding="utf-8")
    else:
        output.write_text(installed.text, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {installed.result_count} result(s) to {output}")
