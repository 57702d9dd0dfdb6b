"""Wire ref changes to matching and matching to the report cache.

Two kinds of sequence token keep results ordered:

* each matching cycle gets a cycle token; a cycle that resumes after a newer
  one was triggered stops without publishing anything;
* each selection-change event carries the state's sequence token, which the
  report cache checks before touching the report slot.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

import httpx

from .augment import LogAugmenter
from .cache import Presenter, ReportCache
from .config import SyncConfig
from .credentials import CredentialProvider, default_provider
from .exceptions import ScanwatchError
from .git.reader import RepositoryReader
from .logging_config import get_logger
from .matcher import AnalysisMatcher
from .models import MatchOutcome, SelectedAnalysis
from .remote.client import CodeScanningClient
from .state import SelectionChanged, SharedState
from .watcher import RefWatcher

logger = get_logger(__name__)


class CycleSuperseded(Exception):
    """A newer matching cycle was triggered while this one was suspended."""

    def __init__(self, cycle: int, latest: int):
        super().__init__(f"cycle {cycle} superseded by {latest}")
        self.cycle = cycle
        self.latest = latest


class Orchestrator:
    """Owns one session: guards, matching cycles, installs and the watcher.

    All work runs on the caller's event loop. Installs and debounced
    refreshes are spawned as tasks; :meth:`wait_idle` awaits them.
    """

    def __init__(
        self,
        config: SyncConfig,
        state: Optional[SharedState] = None,
        credentials: Optional[CredentialProvider] = None,
        presenter: Optional[Presenter] = None,
        augmenter: Optional[LogAugmenter] = None,
        reader: Optional[RepositoryReader] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config
        self.state = state or SharedState()
        self.credentials = credentials or default_provider(config)
        self.presenter = presenter
        self.augmenter = augmenter
        self.reader = reader or RepositoryReader(config.workspace_path, max_commits=config.max_commits)
        self._http_client = http_client

        self.client: Optional[CodeScanningClient] = None
        self.matcher: Optional[AnalysisMatcher] = None
        self.cache: Optional[ReportCache] = None
        self.active = False

        self._cycle = 0
        self._last_token: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()
        self._watcher: Optional[RefWatcher] = None

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def start(self) -> bool:
        """Run the startup guards, wire components and run the first cycle.

        Returns False (feature inactive) when git is missing or a guard
        fails; nothing else is affected.
        """
        try:
            coords = await self.reader.check_preconditions()
        except ScanwatchError as e:
            if e.kind is None or not e.kind.soft_disables:
                raise
            logger.warning("Code scanning sync inactive: %s", e)
            self.active = False
            return False

        self.client = CodeScanningClient(
            coords,
            api_base=self.config.api_base,
            client=self._http_client,
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.matcher = AnalysisMatcher(self.client, self.reader, self.config.max_commits)
        self.cache = ReportCache(
            self.state,
            self.client,
            credentials=self.credentials,
            augmenter=self.augmenter,
            presenter=self.presenter,
        )
        self.state.subscribe(self._on_selection_changed)
        self.active = True
        logger.info("Tracking code scanning for %s", coords.slug)

        await self.refresh()
        return True

    async def run(self) -> None:
        """Start, then watch refs until :meth:`stop` is called."""
        if not await self.start():
            return
        self._watcher = RefWatcher(self.reader.git_dir, lambda _paths: self.trigger())
        try:
            await self._watcher.run()
        finally:
            await self.aclose()

    def stop(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()

    async def aclose(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        await self.wait_idle()
        self.state.unsubscribe(self._on_selection_changed)
        if self.client is not None:
            await self.client.aclose()

    async def wait_idle(self) -> None:
        """Wait until no refresh or install task is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Matching cycle ────────────────────────────────────────────────

    async def refresh(self) -> Optional[SelectedAnalysis]:
        """Run one matching cycle and publish its selection.

        Returns the published selection, or None if the cycle failed or was
        superseded.
        """
        if self.matcher is None:
            logger.debug("refresh() before start(); ignored")
            return None

        cycle = self._next_cycle()
        try:
            branch_state = await self.reader.resolve_branch_state()
            self._checkpoint(cycle)
            self.state.set_branch_state(branch_state)

            token = await self.credentials.get_token()
            self._checkpoint(cycle)

            selection = await self.matcher.match(
                branch_state, token, checkpoint=lambda: self._checkpoint(cycle)
            )
            self._checkpoint(cycle)
        except CycleSuperseded as e:
            logger.debug("Discarding matching %s", e)
            return None
        except ScanwatchError as e:
            if cycle == self._cycle:
                logger.warning("Matching cycle failed: %s", e)
                self.state.set_status(e.message)
            return None

        if selection.outcome is MatchOutcome.FETCH_FAILED:
            # Transient list failure: keep the previous selection and report
            self.state.set_status(selection.status_message)
            return None

        self._last_token = token
        resend = (
            selection.analysis is not None
            and self.cache is not None
            and not self.cache.covers(selection.analysis.id)
        )
        self.state.publish_selection(selection, force=resend)
        return selection

    def trigger(self) -> None:
        """Request a refresh; bursts within the debounce window collapse to one."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        delay = self.config.debounce_seconds
        if delay <= 0:
            self._spawn(self.refresh())
            return
        self._pending = asyncio.get_running_loop().create_task(self._debounced(delay))

    async def _debounced(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._spawn(self.refresh())

    def _next_cycle(self) -> int:
        self._cycle += 1
        return self._cycle

    def _checkpoint(self, cycle: int) -> None:
        if cycle != self._cycle:
            raise CycleSuperseded(cycle, self._cycle)

    # ── Installs ──────────────────────────────────────────────────────

    def _on_selection_changed(self, event: SelectionChanged) -> None:
        if self.cache is None:
            return
        self._spawn(self.cache.install(event.selection, token=self._last_token, sequence=event.sequence))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)
