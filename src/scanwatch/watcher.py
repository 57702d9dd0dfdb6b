"""Watch local refs and trigger re-matching when a branch moves."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

from watchfiles import Change, awatch

from .logging_config import get_logger

logger = get_logger(__name__)

# Coalescing window handed to watchfiles
DEBOUNCE_MS = 300

RefChangeCallback = Callable[[list[str]], None]


class RefWatcher:
    """Watches ``.git/refs/heads`` (and ``.git/HEAD``) for add/change/unlink.

    Uses ``watchfiles.awatch`` so the watch loop shares the event loop with
    the rest of the session. Each batch of changes invokes ``on_change`` once
    with the changed paths; the callback decides what to re-run.
    """

    def __init__(
        self,
        git_dir: str | Path,
        on_change: RefChangeCallback,
        debounce_ms: int = DEBOUNCE_MS,
        force_polling: Optional[bool] = None,
    ) -> None:
        self.git_dir = Path(git_dir).resolve()
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Signal the watch loop to exit."""
        logger.debug("Stopping ref watcher...")
        self._stop_event.set()

    async def run(self) -> None:
        """Watch until :meth:`stop` is called."""
        logger.info("Watching %s for ref changes", self.git_dir / "refs" / "heads")

        async for changes in awatch(
            self.git_dir,
            watch_filter=_RefFilter(self.git_dir),
            debounce=self.debounce_ms,
            stop_event=self._stop_event,
            force_polling=self.force_polling,
        ):
            if self._stop_event.is_set():
                break

            changed = sorted(path for _change, path in changes)
            logger.debug("Ref change(s): %s", ", ".join(changed))
            self.on_change(changed)


class _RefFilter:
    """watchfiles filter: branch refs and HEAD only, ignoring git's lock files."""

    def __init__(self, git_dir: Path) -> None:
        self.git_dir = git_dir
        self.heads_dir = git_dir / "refs" / "heads"
        self.head_file = git_dir / "HEAD"

    def __call__(self, change: Change, path: str) -> bool:
        p = Path(path)
        if p.suffix == ".lock":
            return False
        if p == self.head_file:
            return True
        return self.heads_dir in p.parents
