"""Cycle runner: analyze every asset on a wall-clock grid.

Each cycle:
1. Launch one analysis per asset concurrently and wait for all of them
2. Collect results into a CycleSnapshot (None for assets without data)
3. Replace the previous snapshot and notify subscribers

Cycles never overlap. The next run is computed from the clock after a
cycle completes, on the next ``cycle_minutes`` mark strictly in the
future, so delays do not accumulate.

A cycle whose fan-out/fan-in itself fails keeps the previous snapshot
and only records the error.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from signal_engine.analyzer import AssetAnalyzer, Clock, local_now
from signal_engine.models import AssetResult, CycleSnapshot
from signal_engine.timing import next_grid_mark

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[CycleSnapshot], Awaitable[None]]
SleepFunc = Callable[[float], Awaitable[None]]

CYCLE_FAILED_MESSAGE = "Failed to load signals"


class CycleRunner:
    """Runs AssetAnalyzer over all assets and keeps the latest snapshot."""

    def __init__(
        self,
        analyzer: AssetAnalyzer,
        assets: list[str],
        cycle_minutes: int = 5,
        clock: Clock | None = None,
        sleep: SleepFunc | None = None,
    ):
        self.analyzer = analyzer
        self.assets = list(assets)
        self.cycle_minutes = cycle_minutes
        self.clock = clock or local_now
        self._sleep = sleep or asyncio.sleep

        self._snapshot: CycleSnapshot | None = None
        self._cycle_count = 0
        self._loading = False
        self._last_error: str | None = None
        self._next_run_at: datetime | None = None

        self._callbacks: list[SnapshotCallback] = []
        self._task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None
        self._starting = False

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def on_snapshot(self, callback: SnapshotCallback) -> None:
        """Register a callback for every new snapshot."""
        self._callbacks.append(callback)

    def off_snapshot(self, callback: SnapshotCallback) -> None:
        """Unregister a snapshot callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def _notify(self, snapshot: CycleSnapshot) -> None:
        for callback in list(self._callbacks):
            try:
                await callback(snapshot)
            except Exception as e:
                logger.warning(f"Snapshot callback error: {e}")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> CycleSnapshot | None:
        """Latest completed snapshot (None before the first cycle)."""
        return self._snapshot

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def next_run_at(self) -> datetime | None:
        return self._next_run_at

    def status(self) -> dict:
        """Runner state for status endpoints."""
        return {
            "running": self.is_running,
            "loading": self._loading,
            "cycle": self._cycle_count,
            "next_run_at": self._next_run_at.isoformat() if self._next_run_at else None,
            "last_completed_at": (
                self._snapshot.completed_at.isoformat() if self._snapshot else None
            ),
            "last_error": self._last_error,
        }

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def _analyze_all(self) -> dict[str, AssetResult | None]:
        """Fan out one analysis per asset; one failure never fails the rest."""
        outcomes = await asyncio.gather(
            *(self.analyzer.analyze(asset) for asset in self.assets),
            return_exceptions=True,
        )

        results: dict[str, AssetResult | None] = {}
        for asset, outcome in zip(self.assets, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Analysis failed for {asset}: {outcome!r}")
                results[asset] = None
            else:
                results[asset] = outcome
        return results

    async def run_cycle(self) -> CycleSnapshot | None:
        """
        Run one full cycle.

        Returns:
            The new snapshot, or None if the cycle failed (the previous
            snapshot is kept in that case)
        """
        self._loading = True
        self._last_error = None
        started_at = self.clock()

        try:
            results = await self._analyze_all()
        except Exception as e:
            logger.error(f"Cycle failed, keeping previous snapshot: {e}")
            self._last_error = CYCLE_FAILED_MESSAGE
            return None
        finally:
            self._loading = False

        self._cycle_count += 1
        snapshot = CycleSnapshot(
            cycle=self._cycle_count,
            started_at=started_at,
            completed_at=self.clock(),
            results=results,
        )
        self._snapshot = snapshot

        available = len(snapshot.available)
        logger.info(
            "Cycle %d complete: %d/%d assets with signals",
            snapshot.cycle, available, len(self.assets),
        )

        await self._notify(snapshot)
        return snapshot

    def schedule_next(self) -> datetime:
        """Compute the next grid mark from the current instant."""
        self._next_run_at = next_grid_mark(self.clock(), self.cycle_minutes)
        return self._next_run_at

    async def _run_loop(self) -> None:
        """Sleep to the next grid mark, run, repeat."""
        while True:
            run_at = self.schedule_next()
            delay = (run_at - self.clock()).total_seconds()
            logger.debug(f"Next cycle at {run_at.isoformat()} (in {delay:.1f}s)")
            await self._sleep(max(delay, 0.0))
            # Shielded so stop() lets an in-flight cycle complete
            self._cycle_task = asyncio.create_task(self.run_cycle())
            try:
                await asyncio.shield(self._cycle_task)
            except Exception as e:
                logger.error(f"Unexpected cycle error: {e}")
                self._last_error = CYCLE_FAILED_MESSAGE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, run_immediately: bool = True) -> None:
        """Run a first cycle (optionally) and start the scheduling loop."""
        if self._starting or self.is_running:
            return

        self._starting = True
        try:
            logger.info(
                f"Starting cycle runner: {len(self.assets)} assets, "
                f"every {self.cycle_minutes} minutes"
            )
            if run_immediately:
                await self.run_cycle()

            self._task = asyncio.create_task(self._run_loop())
        finally:
            self._starting = False

    async def stop(self) -> None:
        """Stop rescheduling. A cycle already in flight runs to completion."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._cycle_task and not self._cycle_task.done():
            await self._cycle_task
        self._cycle_task = None
        self._next_run_at = None
        logger.info("Cycle runner stopped")
