"""``scanwatch watch`` — follow ref changes and keep the report current."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from ..exceptions import ScanwatchError
from . import app
from ._common import build_orchestrator, console, start_session


@app.command()
def watch(
    path: Path = typer.Argument(Path("."), help="Working tree to watch", file_okay=False),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    token: Optional[str] = typer.Option(None, "--token", help="Access token (default: $GITHUB_TOKEN, then gh)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Re-match whenever a branch ref moves; print state after every install."""
    settings = start_session(path, config, verbose)
    orchestrator = build_orchestrator(settings, token=token, watching=True)

    console.print(f"[bold]Watching[/bold] {settings.workspace_path}")
    console.print("[dim]Press Ctrl+C to stop[/dim]")
    try:
        asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")
        return
    except ScanwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not orchestrator.active:
        console.print("[yellow]Code scanning sync is inactive for this directory[/yellow] (see log)")
        raise typer.Exit(1)
