"""Shared state hub for one scanwatch session.

Holds branch, head commit, selected analysis, status message, busy flag and
the installed-report collection. Selection changes are published on a typed
channel; every event carries a sequence token that consumers must check
before mutating state on completion of their own work.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Optional

from .logging_config import get_logger
from .models import BranchState, Report, SelectedAnalysis, StateSnapshot

logger = get_logger(__name__)


@dataclass(frozen=True)
class SelectionChanged:
    selection: Optional[SelectedAnalysis]
    sequence: int


SelectionSubscriber = Callable[[SelectionChanged], None]


class SharedState:
    """Data hub. Holds no logic beyond change detection and fan-out.

    Runs on a single event loop, so no locking is needed; all writers are
    coroutines on that loop.
    """

    def __init__(self) -> None:
        self.branch_state: Optional[BranchState] = None
        self.selection: Optional[SelectedAnalysis] = None
        self.status_message: str = ""
        self.busy: bool = False
        self._reports: list[Report] = []
        self._sequence = itertools.count(1)
        self._subscribers: list[SelectionSubscriber] = []

    # ── Branch / status ───────────────────────────────────────────────

    @property
    def branch(self) -> Optional[str]:
        return self.branch_state.branch_name if self.branch_state else None

    @property
    def head_commit_hash(self) -> Optional[str]:
        return self.branch_state.head_commit_hash if self.branch_state else None

    def set_branch_state(self, branch_state: BranchState) -> None:
        if branch_state != self.branch_state:
            logger.debug("Branch state -> %s@%s", branch_state.branch_name, branch_state.short_hash)
        self.branch_state = branch_state

    def set_status(self, message: str) -> None:
        self.status_message = message

    # ── Selection channel ─────────────────────────────────────────────

    def subscribe(self, callback: SelectionSubscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: SelectionSubscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def publish_selection(self, selection: SelectedAnalysis, force: bool = False) -> Optional[SelectionChanged]:
        """Store a freshly computed selection and its status message.

        Subscribers are notified only when the selected analysis id changes,
        so an unchanged selection never triggers a second report fetch.
        ``force`` notifies anyway, e.g. when the report for an unchanged
        selection never made it into the collection.
        """
        previous_id = self.selection.analysis_id if self.selection else None
        self.selection = selection
        self.status_message = selection.status_message

        if selection.analysis_id == previous_id and not force:
            return None

        event = SelectionChanged(selection=selection, sequence=next(self._sequence))
        logger.debug("Selection %s -> %s (seq %d)", previous_id, selection.analysis_id, event.sequence)
        for callback in list(self._subscribers):
            callback(event)
        return event

    # ── Busy signal ───────────────────────────────────────────────────

    def set_busy(self, busy: bool) -> None:
        if busy != self.busy:
            logger.debug("Busy -> %s", busy)
        self.busy = busy

    # ── Report collection ─────────────────────────────────────────────

    @property
    def reports(self) -> list[Report]:
        return list(self._reports)

    def add_report(self, report: Report) -> None:
        self._reports.append(report)

    def remove_report(self, origin_id: str) -> bool:
        """Remove the first report with ``origin_id``. Returns True if one was removed."""
        for index, report in enumerate(self._reports):
            if report.origin_id == origin_id:
                del self._reports[index]
                return True
        return False

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            branch=self.branch,
            head_commit_hash=self.head_commit_hash,
            selection=self.selection,
            status_message=self.status_message,
            busy=self.busy,
            reports=self.reports,
        )
