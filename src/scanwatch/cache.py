"""Single-slot cache for the SARIF report of the selected analysis.

Only one report is ever resident. Each install carries a sequence token; an
install whose token has been overtaken by a newer one stops at its next
resumption point and leaves the report collection and busy flag alone.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from .augment import LogAugmenter, RuleAugmenter
from .credentials import CredentialProvider, require_token
from .exceptions import AuthUnavailable, FetchError
from .logging_config import get_logger
from .models import Report, SelectedAnalysis
from .remote.client import CodeScanningClient
from .state import SharedState

logger = get_logger(__name__)

REPORT_FAILED_MESSAGE = "Unable to load the code scanning report."


class InstallResult(Enum):
    INSTALLED = "installed"
    CLEARED = "cleared"
    FAILED = "failed"
    SUPERSEDED = "superseded"


class Presenter(Protocol):
    def show(self) -> None: ...


class ReportCache:
    """Fetches, augments and installs the report for one selection at a time.

    The origin of the resident report and the latest issued sequence token
    are owned by the instance, so separate caches never interfere.
    """

    def __init__(
        self,
        state: SharedState,
        client: CodeScanningClient,
        credentials: Optional[CredentialProvider] = None,
        augmenter: Optional[LogAugmenter] = None,
        presenter: Optional[Presenter] = None,
    ):
        self.state = state
        self.client = client
        self.credentials = credentials
        self.augmenter = augmenter if augmenter is not None else RuleAugmenter()
        self.presenter = presenter
        self._current_origin: Optional[str] = None
        self._installed_id: Optional[int] = None
        self._inflight_id: Optional[int] = None
        self._latest_sequence = 0

    @property
    def current_origin(self) -> Optional[str]:
        return self._current_origin

    @property
    def latest_sequence(self) -> int:
        return self._latest_sequence

    def is_latest(self, sequence: int) -> bool:
        return sequence == self._latest_sequence

    def covers(self, analysis_id: int) -> bool:
        """True if the report for ``analysis_id`` is resident or being fetched."""
        return analysis_id in (self._installed_id, self._inflight_id)

    async def install(
        self,
        selection: Optional[SelectedAnalysis],
        token: Optional[str] = None,
        sequence: Optional[int] = None,
    ) -> InstallResult:
        """Make the report collection reflect ``selection``.

        Args:
            selection: The new selection; absent (or without an analysis)
                clears the slot.
            token: Access token. Acquired from ``credentials`` when omitted.
            sequence: Token from the selection-change event. A fresh token is
                issued when omitted.
        """
        if sequence is None:
            sequence = self._latest_sequence + 1
        if sequence < self._latest_sequence:
            logger.debug("Install seq %d arrived after seq %d; discarded", sequence, self._latest_sequence)
            return InstallResult.SUPERSEDED
        self._latest_sequence = sequence
        self._inflight_id = selection.analysis_id if selection is not None else None

        self.state.set_busy(True)
        try:
            result = await self._install(selection, token, sequence)
        finally:
            if self.is_latest(sequence):
                self._inflight_id = None
                self.state.set_busy(False)

        if result is InstallResult.SUPERSEDED:
            logger.debug("Install seq %d superseded by seq %d", sequence, self._latest_sequence)
        elif self.presenter is not None:
            self.presenter.show()
        return result

    async def _install(
        self,
        selection: Optional[SelectedAnalysis],
        token: Optional[str],
        sequence: int,
    ) -> InstallResult:
        if selection is None or selection.analysis is None:
            self._evict()
            return InstallResult.CLEARED

        analysis = selection.analysis

        if not token:
            try:
                token = await require_token(self.credentials)
            except AuthUnavailable as e:
                if not self.is_latest(sequence):
                    return InstallResult.SUPERSEDED
                logger.warning("Report fetch for analysis %d skipped: %s", analysis.id, e)
                self.state.set_status(e.message)
                return InstallResult.FAILED
            if not self.is_latest(sequence):
                return InstallResult.SUPERSEDED

        try:
            uri, body, text = await self.client.fetch_report(analysis.id, token)
        except FetchError as e:
            if not self.is_latest(sequence):
                return InstallResult.SUPERSEDED
            logger.warning("Report fetch for analysis %d failed: %s", analysis.id, e)
            self.state.set_status(f"{REPORT_FAILED_MESSAGE} {e.reason}")
            return InstallResult.FAILED

        if not self.is_latest(sequence):
            return InstallResult.SUPERSEDED

        self.augmenter(body)
        report = Report(origin_id=uri, body=body, text=text, augmented=True, analysis_id=analysis.id)

        self._evict()
        self.state.add_report(report)
        self._current_origin = report.origin_id
        self._installed_id = analysis.id
        logger.info("Installed report for analysis %d (%d results)", analysis.id, report.result_count)
        return InstallResult.INSTALLED

    def _evict(self) -> None:
        if self._current_origin is None:
            return
        self.state.remove_report(self._current_origin)
        self._current_origin = None
        self._installed_id = None
