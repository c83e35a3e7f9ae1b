"""
NoteSync - Coalescing Refresh Scheduler
========================================

What:  Collapses bursts of refresh requests into a single refresh cycle.
How:   Debounce with an explicit asyncio task handle:

       request_refresh() ─┐ cancel pending timer, start a new one
       request_refresh() ─┤ cancel pending timer, start a new one
       request_refresh() ─┘ cancel pending timer, start a new one
                             └── quiet window (0.3s) ──▶ cycle

       A cycle runs its steps strictly in order (notes, then bookmarks) with
       a fixed pause (0.5s) between consecutive steps.
Who:   Owned by the composition root; steps are the stores' `list()`.

Single flight:
    Only one cycle task exists at a time. A timer that fires while a cycle
    is running does not start a second one; it marks the running cycle to
    go round exactly once more when it finishes. Any number of bursts during
    one cycle therefore add at most one extra cycle.

Cancellation:
    `cancel()` drops the pending timer and any queued extra cycle. The
    `is_active` predicate is checked before every step, so a cycle already
    running stops fetching once the session is gone. `aclose()` also cancels
    the running cycle.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from notesync.config import settings

logger = logging.getLogger(__name__)

RefreshStep = Callable[[], Awaitable[Any]]


class CoalescingRefreshScheduler:
    """
    Debounced, single-flight refresh driver.

    Attributes:
        quiet_window:      Seconds of silence after the last request before a cycle
        inter_fetch_delay: Seconds between consecutive steps of one cycle
        cycles_run:        Number of cycles started so far
    """

    def __init__(
        self,
        steps: Sequence[RefreshStep],
        quiet_window: Optional[float] = None,
        inter_fetch_delay: Optional[float] = None,
        is_active: Optional[Callable[[], bool]] = None,
    ):
        self._steps: List[RefreshStep] = list(steps)
        self.quiet_window = (
            quiet_window if quiet_window is not None else settings.refresh_quiet_window
        )
        self.inter_fetch_delay = (
            inter_fetch_delay
            if inter_fetch_delay is not None
            else settings.refresh_inter_fetch_delay
        )
        self._is_active = is_active or (lambda: True)
        self._timer: Optional[asyncio.Task] = None
        self._cycle: Optional[asyncio.Task] = None
        self._rerun_requested = False
        self.cycles_run = 0

    @property
    def pending(self) -> bool:
        """True while a debounce timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    @property
    def running(self) -> bool:
        """True while a refresh cycle is in flight."""
        return self._cycle is not None and not self._cycle.done()

    def request_refresh(self) -> None:
        """
        Ask for a refresh. Restarts the quiet window.

        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self.pending:
            self._timer.cancel()
        self._timer = loop.create_task(self._fire_after_quiet_window())
        logger.debug("Refresh requested, firing in %.3fs", self.quiet_window)

    def cancel(self) -> None:
        """Drop the pending timer and any queued extra cycle."""
        if self.pending:
            self._timer.cancel()
            logger.debug("Pending refresh cancelled")
        self._timer = None
        self._rerun_requested = False

    async def aclose(self) -> None:
        """Cancel everything, including a cycle in flight, and wait for it to stop."""
        timer = self._timer
        self.cancel()
        tasks = [task for task in (timer, self._cycle) if task is not None and not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._cycle = None

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no cycle is running."""
        while True:
            tasks = [
                task for task in (self._timer, self._cycle) if task is not None and not task.done()
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire_after_quiet_window(self) -> None:
        await asyncio.sleep(self.quiet_window)
        if self._timer is asyncio.current_task():
            self._timer = None

        if self.running:
            self._rerun_requested = True
            logger.debug("Refresh already in flight, queued one more cycle")
            return

        self._cycle = asyncio.get_running_loop().create_task(self._run_cycles())

    async def _run_cycles(self) -> None:
        while True:
            self._rerun_requested = False
            try:
                await self._run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Background task: nobody awaits it, so this is the last stop
                logger.error("Refresh cycle failed: %s", str(e), exc_info=True)
            if not self._rerun_requested:
                return

    async def _run_cycle(self) -> None:
        self.cycles_run += 1
        cycle_number = self.cycles_run
        logger.debug("Refresh cycle %d starting", cycle_number)

        for index, step in enumerate(self._steps):
            if index:
                await asyncio.sleep(self.inter_fetch_delay)
            if not self._is_active():
                logger.info("Refresh cycle %d stopped: session no longer active", cycle_number)
                return
            await step()

        logger.debug("Refresh cycle %d finished", cycle_number)
