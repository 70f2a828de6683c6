"""Tests for the cycle runner."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from signal_engine.analyzer import AssetAnalyzer
from signal_engine.models import CycleSnapshot
from signal_service.services import CycleRunner, CYCLE_FAILED_MESSAGE

NOW = datetime(2024, 1, 1, 10, 2, 30)
ASSETS = ["BTC", "XRP", "BNB", "ADA", "LTC"]


class FakePriceSource:
    """In-memory price source; symbols in `errors` raise."""

    def __init__(self, prices: dict[str, list[float]], errors: set[str] | None = None):
        self.prices = prices
        self.errors = errors or set()

    async def fetch_closes(self, symbol: str, interval: str, limit: int) -> list[float]:
        await asyncio.sleep(0)
        if symbol in self.errors:
            raise ConnectionError(f"{symbol} unreachable")
        return list(self.prices.get(symbol, []))


def _prices(n: int = 200) -> list[float]:
    return [100.0 + (i % 9) * 0.7 for i in range(n)]


def _runner(source, assets=ASSETS, **kwargs) -> CycleRunner:
    analyzer = AssetAnalyzer(source=source, clock=lambda: NOW)
    return CycleRunner(analyzer, assets, clock=lambda: NOW, **kwargs)


@pytest.fixture
def healthy_source():
    return FakePriceSource({f"{a}USDT": _prices() for a in ASSETS})


class TestRunCycle:
    """Single-cycle behavior."""

    @pytest.mark.asyncio
    async def test_all_assets_analyzed(self, healthy_source):
        """Every asset gets a result in one cycle."""
        runner = _runner(healthy_source)

        snapshot = await runner.run_cycle()

        assert isinstance(snapshot, CycleSnapshot)
        assert snapshot.cycle == 1
        assert list(snapshot.results) == ASSETS
        assert all(result is not None for result in snapshot.results.values())
        assert runner.snapshot is snapshot
        assert runner.last_error is None
        assert not runner.is_loading

    @pytest.mark.asyncio
    async def test_failing_asset_does_not_block_others(self):
        """One failing asset leaves the rest intact."""
        prices = {f"{a}USDT": _prices() for a in ASSETS}
        runner = _runner(FakePriceSource(prices, errors={"XRPUSDT"}))

        snapshot = await runner.run_cycle()

        assert snapshot.get("XRP") is None
        assert set(snapshot.available) == {"BTC", "BNB", "ADA", "LTC"}

    @pytest.mark.asyncio
    async def test_short_history_asset_has_no_result(self):
        """Asset with short history maps to None."""
        prices = {f"{a}USDT": _prices() for a in ASSETS}
        prices["ADAUSDT"] = _prices(19)
        runner = _runner(FakePriceSource(prices))

        snapshot = await runner.run_cycle()

        assert snapshot.get("ADA") is None
        assert snapshot.get("BTC") is not None
        assert len(snapshot.available) == 4

    @pytest.mark.asyncio
    async def test_analyzer_exception_isolated(self):
        """Exceptions escaping analyze() are recorded as no result."""
        analyzer = MagicMock()
        ok_result = MagicMock()

        async def analyze(asset):
            if asset == "BNB":
                raise RuntimeError("boom")
            return ok_result

        analyzer.analyze = AsyncMock(side_effect=analyze)
        runner = CycleRunner(analyzer, ["BTC", "BNB"], clock=lambda: NOW)

        results = await runner._analyze_all()

        assert results == {"BTC": ok_result, "BNB": None}
        assert analyzer.analyze.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_previous_snapshot(self, healthy_source):
        """Failed cycle records the error and keeps old data."""
        runner = _runner(healthy_source)
        first = await runner.run_cycle()

        runner._analyze_all = AsyncMock(side_effect=RuntimeError("join failed"))
        second = await runner.run_cycle()

        assert second is None
        assert runner.snapshot is first
        assert runner.last_error == CYCLE_FAILED_MESSAGE
        assert not runner.is_loading

    @pytest.mark.asyncio
    async def test_error_cleared_by_next_good_cycle(self, healthy_source):
        """A good cycle clears the previous error."""
        runner = _runner(healthy_source)
        real_analyze_all = runner._analyze_all

        runner._analyze_all = AsyncMock(side_effect=RuntimeError("join failed"))
        await runner.run_cycle()
        assert runner.last_error == CYCLE_FAILED_MESSAGE

        runner._analyze_all = real_analyze_all
        snapshot = await runner.run_cycle()

        assert snapshot.cycle == 1
        assert runner.last_error is None

    @pytest.mark.asyncio
    async def test_snapshot_replaced_each_cycle(self, healthy_source):
        """Each cycle replaces the snapshot and bumps the counter."""
        runner = _runner(healthy_source)

        first = await runner.run_cycle()
        second = await runner.run_cycle()

        assert second.cycle == 2
        assert runner.snapshot is second
        assert first.cycle == 1

    @pytest.mark.asyncio
    async def test_loading_flag_during_cycle(self, healthy_source):
        """Loading is true only while the cycle runs."""
        runner = _runner(healthy_source)
        seen = []

        original = healthy_source.fetch_closes

        async def spy(symbol, interval, limit):
            seen.append(runner.is_loading)
            return await original(symbol, interval, limit)

        healthy_source.fetch_closes = spy
        await runner.run_cycle()

        assert seen and all(seen)
        assert not runner.is_loading


class TestCallbacks:
    """Snapshot subscribers."""

    @pytest.mark.asyncio
    async def test_callback_receives_snapshot(self, healthy_source):
        """Subscribers receive each new snapshot."""
        runner = _runner(healthy_source)
        callback = AsyncMock()
        runner.on_snapshot(callback)

        snapshot = await runner.run_cycle()

        callback.assert_awaited_once_with(snapshot)

    @pytest.mark.asyncio
    async def test_callback_error_does_not_fail_cycle(self, healthy_source):
        """A raising callback does not fail the cycle."""
        runner = _runner(healthy_source)
        runner.on_snapshot(AsyncMock(side_effect=RuntimeError("subscriber down")))
        second = AsyncMock()
        runner.on_snapshot(second)

        snapshot = await runner.run_cycle()

        assert snapshot is not None
        second.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_off_snapshot(self, healthy_source):
        """Removed callbacks are no longer called."""
        runner = _runner(healthy_source)
        callback = AsyncMock()
        runner.on_snapshot(callback)
        runner.off_snapshot(callback)

        await runner.run_cycle()

        callback.assert_not_awaited()


class TestScheduling:
    """Grid scheduling and lifecycle."""

    def test_schedule_next_on_grid(self, healthy_source):
        """Next run is the next 5-minute mark."""
        runner = _runner(healthy_source)

        assert runner.schedule_next() == datetime(2024, 1, 1, 10, 5)
        assert runner.next_run_at == datetime(2024, 1, 1, 10, 5)

    @pytest.mark.asyncio
    async def test_loop_sleeps_until_grid_mark(self, healthy_source):
        """Loop sleeps to each grid mark and stops cleanly."""
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)
            await asyncio.sleep(0)

        runner = _runner(healthy_source, sleep=fake_sleep)
        done = asyncio.Event()

        async def on_snapshot(snapshot):
            if snapshot.cycle >= 3:
                done.set()

        runner.on_snapshot(on_snapshot)

        await runner.start()
        assert runner.snapshot.cycle == 1  # immediate first cycle
        assert runner.is_running

        await asyncio.wait_for(done.wait(), timeout=5)
        await runner.stop()

        assert not runner.is_running
        assert runner.next_run_at is None
        # 10:02:30 -> 10:05:00
        assert sleeps[0] == 150.0
        assert all(delay == 150.0 for delay in sleeps)

    @pytest.mark.asyncio
    async def test_start_without_immediate_cycle(self, healthy_source):
        """start(run_immediately=False) waits for the grid."""
        gate = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            await gate.wait()

        runner = _runner(healthy_source, sleep=blocking_sleep)

        await runner.start(run_immediately=False)
        await asyncio.sleep(0)

        assert runner.snapshot is None
        assert runner.next_run_at == datetime(2024, 1, 1, 10, 5)

        await runner.stop()
        assert runner.snapshot is None

    @pytest.mark.asyncio
    async def test_concurrent_start_runs_once(self, healthy_source):
        """A second start() during the first cycle is a no-op."""
        gate = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            await gate.wait()

        runner = _runner(healthy_source, sleep=blocking_sleep)

        await asyncio.gather(runner.start(), runner.start())
        first_task = runner._task
        await runner.start()

        assert runner.snapshot.cycle == 1
        assert runner.is_running
        assert runner._task is first_task

        await runner.stop()
        assert not runner.is_running

    @pytest.mark.asyncio
    async def test_status(self, healthy_source):
        """Status dict reflects the last cycle."""
        runner = _runner(healthy_source)
        await runner.run_cycle()

        status = runner.status()

        assert status["cycle"] == 1
        assert status["running"] is False
        assert status["loading"] is False
        assert status["last_error"] is None
        assert status["last_completed_at"] == NOW.isoformat()
