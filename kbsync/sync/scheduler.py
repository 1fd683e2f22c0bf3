"""
Periodic re-run of the sync pipeline.

A tick that fires while the previous cycle is still running is skipped, so two
cycles never sync the same artifacts concurrently. A failed cycle is logged
and recorded, and the runner keeps ticking.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from ..config import DEFAULT_SYNC_INTERVAL_SECONDS
from .error_tracker import ErrorTracker, ErrorSeverity
from .logging_manager import get_logger

logger = get_logger(__name__)


class PeriodicRunner:
    def __init__(self, cycle: Callable[[], Awaitable[Any]],
                 interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
                 error_tracker: Optional[ErrorTracker] = None,
                 name: str = "sync"):
        """
        Args:
            cycle: Coroutine function running one full harvest/sync cycle
            interval_seconds: Seconds between ticks
            error_tracker: Collects failed cycles
            name: Label used in logs and error reports
        """
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.error_tracker = error_tracker or ErrorTracker()
        self.name = name
        self.cycles_completed = 0
        self.cycles_failed = 0
        self.cycles_skipped = 0
        self._current: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    def trigger(self) -> Optional[asyncio.Task]:
        """Start a cycle in the background unless one is already running."""
        if self.in_flight:
            self.cycles_skipped += 1
            logger.warning(f"[{self.name}] Previous cycle still running, skipping this tick")
            return None
        self._current = asyncio.create_task(self._run_cycle())
        return self._current

    async def run_once(self) -> bool:
        """Run a single cycle to completion. Returns False if it was skipped."""
        task = self.trigger()
        if task is None:
            return False
        await task
        return True

    async def _run_cycle(self) -> Any:
        started = time.monotonic()
        try:
            result = await self.cycle()
        except Exception as e:
            self.cycles_failed += 1
            self.error_tracker.report_exception(e, source_id=self.name, severity=ErrorSeverity.ERROR)
            logger.error(f"[{self.name}] Sync cycle failed: {e}", exc_info=True,
                         extra={'details': {'elapsed_seconds': round(time.monotonic() - started, 3)}})
            return None
        self.cycles_completed += 1
        logger.info(f"[{self.name}] Sync cycle completed in {time.monotonic() - started:.2f}s")
        return result

    async def run_forever(self, max_ticks: Optional[int] = None) -> None:
        """
        Tick immediately and then every ``interval_seconds`` until ``stop()``.

        On stop, waits for a running cycle to finish; cycles are never cancelled.
        """
        self._stop_event = asyncio.Event()
        ticks = 0
        logger.info(f"[{self.name}] Starting periodic sync every {self.interval_seconds}s")
        while not self._stop_event.is_set():
            self.trigger()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        if self.in_flight:
            await self._current
        logger.info(f"[{self.name}] Periodic sync stopped after {ticks} ticks")

    def stop(self) -> None:
        """Stop ticking. A running cycle still completes."""
        if self._stop_event is not None:
            self._stop_event.set()
