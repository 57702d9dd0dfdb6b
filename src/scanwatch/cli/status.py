"""``scanwatch status`` — one matching cycle for the current checkout."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from ..config import SyncConfig
from ..exceptions import ScanwatchError
from ..models import StateSnapshot
from . import app
from ._common import build_orchestrator, console, render_state, start_session


async def run_once(settings: SyncConfig, token: Optional[str]) -> Optional[StateSnapshot]:
    """Start a session, let the first cycle and its install finish, return the state.

    Returns None when the session soft-disabled itself.
    """
    orchestrator = build_orchestrator(settings, token=token)
    try:
        if not await orchestrator.start():
            return None
        await orchestrator.wait_idle()
        return orchestrator.state.snapshot()
    finally:
        await orchestrator.aclose()


@app.command()
def status(
    path: Path = typer.Argument(Path("."), help="Working tree to inspect", file_okay=False),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    token: Optional[str] = typer.Option(None, "--token", help="Access token (default: $GITHUB_TOKEN, then gh)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Errors only"),
) -> None:
    """Show which analysis applies to the checked-out commit and how stale it is."""
    settings = start_session(path, config, verbose, quiet)
    try:
        snapshot = asyncio.run(run_once(settings, token))
    except ScanwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if snapshot is None:
        console.print("[yellow]Code scanning sync is inactive for this directory[/yellow] (see log)")
        raise typer.Exit(1)

    render_state(snapshot)
