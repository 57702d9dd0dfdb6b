"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import SyncConfig, load_config
from ..credentials import default_provider
from ..exceptions import ScanwatchError
from ..logging_config import setup_logging
from ..models import MatchOutcome, StateSnapshot
from ..orchestrator import Orchestrator
from ..state import SharedState

console = Console()

_OUTCOME_STYLE = {
    MatchOutcome.MATCHED: "green",
    MatchOutcome.NO_ANALYSES: "yellow",
    MatchOutcome.NO_INTERSECTION: "yellow",
    MatchOutcome.FEATURE_DISABLED: "red",
    MatchOutcome.AUTH_UNAVAILABLE: "red",
    MatchOutcome.FETCH_FAILED: "red",
}


def start_session(
    path: Path,
    config: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> SyncConfig:
    """Build settings from CLI options and configure logging from them.

    Exits with status 1 on a configuration error.
    """
    try:
        settings = load_config(config_file=config, workspace=str(path), verbose=verbose, quiet=quiet)
    except ScanwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(settings.verbosity, log_file=settings.log_file or None)
    return settings


def build_orchestrator(config: SyncConfig, token: Optional[str] = None, watching: bool = False) -> Orchestrator:
    state = SharedState()
    presenter = ConsolePresenter(state) if watching else None
    return Orchestrator(
        config,
        state=state,
        credentials=default_provider(config, token),
        presenter=presenter,
    )


def render_state(snapshot: StateSnapshot, out: Console = console) -> None:
    """Print branch, selection and banner as a small table."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column(style="dim")
    table.add_column()

    table.add_row("branch", snapshot.branch or "-")
    table.add_row("head", (snapshot.head_commit_hash or "-")[:7])

    selection = snapshot.selection
    if selection is not None:
        style = _OUTCOME_STYLE[selection.outcome]
        table.add_row("outcome", f"[{style}]{selection.outcome.value}[/{style}]")
        if selection.analysis is not None:
            table.add_row("analysis", f"#{selection.analysis.id} on {selection.analysis.commit_sha[:7]}")
            table.add_row("commits ago", str(selection.commits_ago))
        elif selection.outcome is MatchOutcome.NO_ANALYSES:
            table.add_row("note", "no analyses: scanning is disabled or still pending")

    for report in snapshot.reports:
        table.add_row("results", f"{report.result_count} in {report.origin_id}")

    out.print(table)
    if snapshot.status_message:
        out.print(snapshot.status_message, markup=False, highlight=False)


class ConsolePresenter:
    """Prints the session state whenever the report cache finishes an install."""

    def __init__(self, state: SharedState, out: Console = console):
        self.state = state
        self.out = out

    def show(self) -> None:
        self.out.rule("code scanning")
        render_state(self.state.snapshot(), self.out)
