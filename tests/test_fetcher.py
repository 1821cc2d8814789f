"""Tests for fetch cycles."""

import threading
import time
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from quoteticker.display import QueuedContext
from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.fetcher import Fetcher
from quoteticker.models.display_quote import Movement
from quoteticker.models.sample import Sample
from quoteticker.providers.mock import MockQuoteSource

EU_MORNING = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
US_MORNING = datetime(2024, 1, 15, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_fetcher(mock_source, cache, hours):
    created = []

    def factory(symbols=("MSFT", "VWS.CO"), **kwargs):
        kwargs.setdefault("max_workers", 4)
        f = Fetcher(symbols, kwargs.pop("source", mock_source), cache, hours, **kwargs)
        created.append(f)
        return f

    yield factory
    for f in created:
        f.close()


class TestInitialCycle:
    def test_fetches_every_symbol_regardless_of_hours(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", 410.0)
        mock_source.queue_prices("VWS.CO", 150.0)
        fetcher = make_fetcher()

        report = fetcher.run_cycle(EU_MORNING)

        assert report.initial
        assert sorted(report.fetched) == ["MSFT", "VWS.CO"]
        assert report.closed == []
        msft = cache.get("MSFT")
        assert msft.movement is Movement.INITIAL
        assert msft.market_open is False  # fetched while New York is closed
        assert cache.get("VWS.CO").market_open is True

    def test_records_last_sample(self, make_fetcher, mock_source, cache, sample_series):
        mock_source.set_samples("MSFT", sample_series)
        make_fetcher(["MSFT"]).run_cycle(US_MORNING)
        q = cache.get("MSFT")
        assert q.price == Decimal("400.750")
        assert q.as_of == sample_series[-1].timestamp

    def test_starting_flag(self, make_fetcher, mock_source):
        mock_source.queue_prices("MSFT", 1.0)
        fetcher = make_fetcher(["MSFT"])
        assert fetcher.starting
        fetcher.run_cycle(US_MORNING)
        assert not fetcher.starting
        assert fetcher.initial_cycle_done


class TestLaterCycles:
    def test_closed_market_skipped_open_market_refetched(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", 410.0, 999.0)
        mock_source.queue_prices("VWS.CO", 150.0, 151.5)
        fetcher = make_fetcher()
        fetcher.run_cycle(US_MORNING)

        report = fetcher.run_cycle(EU_MORNING)

        assert report.closed == ["MSFT"]
        assert report.fetched == ["VWS.CO"]
        assert mock_source.call_count("MSFT") == 1
        msft = cache.get("MSFT")
        assert msft.market_open is False
        assert msft.price == Decimal("410.000")
        assert msft.movement is Movement.INITIAL
        vws = cache.get("VWS.CO")
        assert vws.price == Decimal("151.500")
        assert vws.movement is Movement.UP

    def test_tenth_of_a_cent_drop_is_down(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", 100.000, 99.999)
        fetcher = make_fetcher(["MSFT"])
        fetcher.run_cycle(US_MORNING)
        fetcher.run_cycle(US_MORNING)
        q = cache.get("MSFT")
        assert q.price == Decimal("99.999")
        assert q.movement is Movement.DOWN

    def test_empty_result_leaves_cache_unchanged(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", 410.0, None)
        fetcher = make_fetcher(["MSFT"])
        fetcher.run_cycle(US_MORNING)
        before = cache.get("MSFT")

        report = fetcher.run_cycle(US_MORNING)

        assert report.failed == ["MSFT"]
        assert cache.get("MSFT") is before

    def test_source_error_isolated_per_symbol(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", 410.0)
        mock_source.set_error("PLTR", TickerError("boom", code=TickerErrorCode.TIMEOUT))
        report = make_fetcher(["MSFT", "PLTR"]).run_cycle(US_MORNING)
        assert report.fetched == ["MSFT"]
        assert report.failed == ["PLTR"]
        assert "PLTR" not in cache

    def test_unexpected_exception_isolated(self, make_fetcher, mock_source, cache):
        class Exploding(MockQuoteSource):
            def get_recent_samples(self, symbol, interval="15min", range_="1d"):
                if symbol == "PLTR":
                    raise KeyError("chart")
                return super().get_recent_samples(symbol, interval, range_)

        source = Exploding()
        source.queue_prices("MSFT", 1.0)
        report = make_fetcher(["MSFT", "PLTR"], source=source).run_cycle(US_MORNING)
        assert report.failed == ["PLTR"]
        assert cache.get("MSFT") is not None

    def test_closed_without_prior_stores_placeholder(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", None)
        mock_source.queue_prices("VWS.CO", 150.0, 151.0)
        fetcher = make_fetcher()
        fetcher.run_cycle(US_MORNING)
        assert "MSFT" not in cache

        fetcher.run_cycle(EU_MORNING)

        msft = cache.get("MSFT")
        assert msft.placeholder
        assert msft.price == Decimal("0")
        assert msft.as_of == EU_MORNING

    def test_price_after_placeholder_is_initial(self, make_fetcher, mock_source, cache):
        mock_source.queue_prices("MSFT", None, 410.0)
        fetcher = make_fetcher(["MSFT"])
        fetcher.run_cycle(EU_MORNING)
        fetcher.run_cycle(EU_MORNING)  # closed: placeholder
        fetcher.run_cycle(US_MORNING)
        q = cache.get("MSFT")
        assert q.movement is Movement.INITIAL
        assert q.price == Decimal("410.000")
        assert q.market_open is True

    def test_uses_clock_when_no_instant(self, mock_source, cache, hours):
        mock_source.queue_prices("MSFT", 1.0, 2.0)
        fetcher = Fetcher(["MSFT"], mock_source, cache, hours, clock=lambda: EU_MORNING)
        try:
            fetcher.run_cycle()
            report = fetcher.run_cycle()
        finally:
            fetcher.close()
        assert report.started_at == EU_MORNING
        assert report.closed == ["MSFT"]


class TestStartedNotification:
    def test_fires_once(self, make_fetcher, mock_source):
        calls = []
        fetcher = make_fetcher(["MSFT"], on_started=lambda: calls.append(1))
        fetcher.run_cycle(US_MORNING)
        fetcher.run_cycle(US_MORNING)
        assert calls == [1]

    def test_fires_when_every_fetch_fails(self, make_fetcher, mock_source):
        calls = []
        mock_source.set_error("MSFT")
        fetcher = make_fetcher(["MSFT"], on_started=lambda: calls.append(1))
        report = fetcher.run_cycle(US_MORNING)
        assert report.failed == ["MSFT"]
        assert calls == [1]
        assert not fetcher.starting

    def test_fires_when_cycle_aborts(self, mock_source, cache):
        class BrokenHours:
            def window_for(self, code):
                raise RuntimeError("hours table unavailable")

        calls = []
        fetcher = Fetcher(["MSFT"], mock_source, cache, BrokenHours(), on_started=lambda: calls.append(1))
        try:
            report = fetcher.run_cycle(US_MORNING)
        finally:
            fetcher.close()
        assert report.aborted
        assert calls == [1]
        assert not fetcher.starting

    def test_posted_to_presentation_context(self, make_fetcher, mock_source):
        ctx = QueuedContext()
        calls = []
        fetcher = make_fetcher(["MSFT"], on_started=lambda: calls.append(1), context=ctx)
        fetcher.run_cycle(US_MORNING)
        assert calls == []
        ctx.drain()
        assert calls == [1]


class TestConcurrency:
    def test_fetches_run_in_parallel(self, cache, hours):
        barrier = threading.Barrier(3, timeout=5.0)

        class BarrierSource(MockQuoteSource):
            def get_recent_samples(self, symbol, interval="15min", range_="1d"):
                barrier.wait()
                return [Sample(timestamp=US_MORNING, close=1.0)]

        fetcher = Fetcher(["A", "B", "C"], BarrierSource(), cache, hours, max_workers=3)
        try:
            report = fetcher.run_cycle(US_MORNING)
        finally:
            fetcher.close()
        assert sorted(report.fetched) == ["A", "B", "C"]

    def test_cycle_waits_for_slow_fetch(self, make_fetcher, cache):
        class SlowSource(MockQuoteSource):
            def get_recent_samples(self, symbol, interval="15min", range_="1d"):
                time.sleep(0.05)
                return [Sample(timestamp=datetime(2024, 1, 15, tzinfo=timezone.utc), close=5.0)]

        report = make_fetcher(["MSFT"], source=SlowSource()).run_cycle(US_MORNING)
        assert report.fetched == ["MSFT"]
        assert cache.get("MSFT").price == Decimal("5.000")
