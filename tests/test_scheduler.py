"""Tests for periodic triggers and the scheduler lifecycle."""

import threading
import time
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from quoteticker.cache import QuoteCache
from quoteticker.display import DisplayBoard
from quoteticker.fetcher import Fetcher
from quoteticker.models.display_quote import Movement
from quoteticker.models.sample import Sample
from quoteticker.providers.mock import MockQuoteSource
from quoteticker.rotator import Rotator
from quoteticker.scheduler import PeriodicTask, Scheduler

US_MORNING = datetime(2024, 1, 15, 16, 0, tzinfo=timezone.utc)


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestPeriodicTask:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask("t", 0, lambda: None)

    def test_ticks_until_stopped(self):
        ticks = []
        task = PeriodicTask("t", 0.01, lambda: ticks.append(1))
        task.start()
        assert _wait_for(lambda: len(ticks) >= 3)
        task.stop()
        settled = len(ticks)
        time.sleep(0.05)
        assert len(ticks) == settled
        assert not task.running

    def test_start_twice_one_thread(self):
        ticks = []
        task = PeriodicTask("double-start", 0.01, lambda: ticks.append(1))
        task.start()
        task.start()
        try:
            named = [t for t in threading.enumerate() if t.name == "double-start"]
            assert len(named) == 1
        finally:
            task.stop()

    def test_stop_is_idempotent(self):
        task = PeriodicTask("t", 0.01, lambda: None)
        task.stop()
        task.start()
        task.stop()
        task.stop()
        assert not task.running

    def test_restart_after_stop(self):
        ticks = []
        task = PeriodicTask("t", 0.01, lambda: ticks.append(1))
        task.start()
        task.stop()
        before = len(ticks)
        task.start()
        try:
            assert _wait_for(lambda: len(ticks) > before)
        finally:
            task.stop()

    def test_failing_callback_keeps_ticking(self):
        ticks = []

        def flaky():
            ticks.append(1)
            raise RuntimeError("tick failed")

        task = PeriodicTask("t", 0.01, flaky)
        task.start()
        try:
            assert _wait_for(lambda: len(ticks) >= 2)
        finally:
            task.stop()

    def test_stop_from_callback(self):
        holder = {}
        task = PeriodicTask("t", 0.01, lambda: holder["task"].stop())
        holder["task"] = task
        task.start()
        assert _wait_for(lambda: not task.running)


@pytest.fixture
def scheduler_parts(mock_source, cache, hours, displayed):
    symbols = ["MSFT", "PLTR"]
    fetcher = Fetcher(symbols, mock_source, cache, hours, clock=lambda: US_MORNING)
    board = DisplayBoard(cache, displayed.append)
    rotator = Rotator(symbols, cache, board)
    return fetcher, rotator


class TestScheduler:
    def test_start_runs_initial_cycle(self, scheduler_parts, cache):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=60)
        try:
            scheduler.start()
            assert fetcher.initial_cycle_done
            assert "MSFT" in cache and "PLTR" in cache
            assert scheduler.running
        finally:
            scheduler.close()
        assert not scheduler.running

    def test_start_without_wait(self, scheduler_parts):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=60)
        try:
            scheduler.start(wait=False)
            assert _wait_for(lambda: fetcher.initial_cycle_done)
        finally:
            scheduler.close()

    def test_rotation_and_polling_fire(self, scheduler_parts, mock_source, displayed):
        fetcher, rotator = scheduler_parts
        with Scheduler(fetcher, rotator, polling_interval=0.02, rotation_interval=0.02):
            assert _wait_for(lambda: mock_source.call_count("MSFT") >= 3)
            assert _wait_for(lambda: {q.ticker for q in displayed} == {"MSFT", "PLTR"})

    def test_stop_halts_rotation(self, scheduler_parts, displayed):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=0.01)
        try:
            scheduler.start()
            assert _wait_for(lambda: len(displayed) >= 2)
            scheduler.stop()
            scheduler.stop()
            settled = len(displayed)
            time.sleep(0.05)
            assert len(displayed) == settled
        finally:
            scheduler.close()

    def test_restart_skips_initial_cycle(self, scheduler_parts, mock_source):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=60)
        try:
            scheduler.start()
            scheduler.stop()
            scheduler.start()
            assert mock_source.call_count("MSFT") == 1
        finally:
            scheduler.close()

    def test_closed_scheduler(self, scheduler_parts):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=60)
        scheduler.close()
        scheduler.close()
        assert scheduler.trigger_fetch() is None
        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_trigger_fetch_returns_report(self, scheduler_parts):
        fetcher, rotator = scheduler_parts
        scheduler = Scheduler(fetcher, rotator, polling_interval=60, rotation_interval=60)
        try:
            report = scheduler.trigger_fetch().result(timeout=2.0)
            assert report.initial
            assert sorted(report.fetched) == ["MSFT", "PLTR"]
        finally:
            scheduler.close()


class GatedSource(MockQuoteSource):
    """Every fetch blocks until ``gate`` is set, then returns a flat price."""

    def __init__(self):
        super().__init__()
        self.gate = threading.Event()

    def get_recent_samples(self, symbol, interval="15min", range_="1d"):
        with self._lock:
            self.calls.append(symbol.upper())
        self.gate.wait(5.0)
        return [Sample(US_MORNING, 100.0)]


class RecordingCache(QuoteCache):
    def __init__(self):
        super().__init__()
        self.recorded = []

    def record_fetch(self, symbol, raw_price, sample_timestamp, market_open):
        quote = super().record_fetch(symbol, raw_price, sample_timestamp, market_open)
        self.recorded.append(quote)
        return quote


class TestOverlappingCycles:
    def test_next_cycle_starts_while_previous_blocked(self, hours, displayed):
        source = GatedSource()
        cache = RecordingCache()
        symbols = ["MSFT", "PLTR"]
        fetcher = Fetcher(symbols, source, cache, hours, clock=lambda: US_MORNING)
        rotator = Rotator(symbols, cache, DisplayBoard(cache, displayed.append))
        scheduler = Scheduler(fetcher, rotator, polling_interval=0.02, rotation_interval=60)
        try:
            scheduler.start(wait=False)
            assert _wait_for(lambda: source.call_count("MSFT") >= 2)
            assert not fetcher.initial_cycle_done
            assert cache.recorded == []

            source.gate.set()
            scheduler.stop()
            scheduler._cycles.shutdown(wait=True)
        finally:
            source.gate.set()
            scheduler.close()

        assert fetcher.initial_cycle_done
        for symbol in symbols:
            quotes = [q for q in cache.recorded if q.ticker == symbol]
            assert len(quotes) == source.call_count(symbol)
            movements = [q.movement for q in quotes]
            assert movements.count(Movement.INITIAL) == 1
            assert set(movements) <= {Movement.INITIAL, Movement.UNCHANGED}
            assert cache.get(symbol).price == Decimal("100.000")
