"""Fetcher — one refresh cycle over every tracked symbol.

A cycle asks the market clock which markets are open, fans the source
queries out over a thread pool, and writes results into the quote cache.
The very first cycle fetches everything, open or not, so the display has a
price to show straight away; later cycles only re-flag closed markets.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from quoteticker.cache import QuoteCache
from quoteticker.display import InlineContext, PresentationContext
from quoteticker.errors import TickerError
from quoteticker.market_clock import MarketHoursTable, market_status
from quoteticker.providers.base import DEFAULT_INTERVAL, DEFAULT_RANGE, BaseQuoteSource

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """Outcome of one fetch cycle."""

    started_at: datetime
    initial: bool
    fetched: list[str] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: bool = False


class Fetcher:
    """Drives fetch cycles for a fixed set of symbols.

    Usage::

        fetcher = Fetcher(["MSFT", "VWS.CO"], source, cache, config.hours_table())
        report = fetcher.run_cycle()
    """

    def __init__(
        self,
        symbols: Sequence[str],
        source: BaseQuoteSource,
        cache: QuoteCache,
        hours: MarketHoursTable,
        *,
        max_workers: int = 8,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
        on_started: Callable[[], None] | None = None,
        context: PresentationContext | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.symbols = tuple(s.upper() for s in symbols)
        self.source = source
        self.cache = cache
        self.hours = hours
        self.interval = interval
        self.range_ = range_
        self._on_started = on_started
        self._context = context or InlineContext()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        # Shared by overlapping cycles, so not capped at the symbol count
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="quote-fetch",
        )
        self._state_lock = threading.Lock()
        self._initial_cycle_done = False

    @property
    def initial_cycle_done(self) -> bool:
        return self._initial_cycle_done

    @property
    def starting(self) -> bool:
        """True until the first cycle has completed, by any outcome."""
        return not self._initial_cycle_done

    # ---------------------------------------------------------------- cycle

    def run_cycle(self, now: datetime | None = None) -> CycleReport:
        """Run one fetch cycle and block until every issued fetch finished.

        Never raises: unexpected failures abandon the cycle and are logged.
        """
        now = now or self._clock()
        initial = not self._initial_cycle_done
        report = CycleReport(started_at=now, initial=initial)

        try:
            status = market_status(self.symbols, now, self.hours)

            futures = {}
            for symbol, market_open in status.items():
                if initial or market_open:
                    futures[symbol] = self._pool.submit(self.fetch_one, symbol, market_open)
                else:
                    self.cache.mark_closed(symbol, now)
                    report.closed.append(symbol)

            wait(futures.values())
            for symbol, future in futures.items():
                if future.result():
                    report.fetched.append(symbol)
                else:
                    report.failed.append(symbol)
        except Exception:
            report.aborted = True
            logger.exception("Fetch cycle abandoned")
        finally:
            self._complete_initial_cycle()

        logger.info(
            "Fetch cycle%s: fetched=%d closed=%d failed=%d",
            " (initial)" if initial else "",
            len(report.fetched), len(report.closed), len(report.failed),
        )
        return report

    def fetch_one(self, symbol: str, market_open: bool) -> bool:
        """Fetch the latest sample for one symbol and record it.

        Returns False (cache untouched) on an empty result or any failure.
        """
        try:
            samples = self.source.get_recent_samples(symbol, self.interval, self.range_)
            if not samples:
                logger.debug("No samples for %s", symbol)
                return False
            last = samples[-1]
            self.cache.record_fetch(symbol, last.close, last.timestamp, market_open)
            return True
        except TickerError as exc:
            logger.warning("Fetch failed for %s (%s): %s", symbol, exc.code.value, exc)
        except Exception:
            logger.exception("Unexpected error fetching %s", symbol)
        return False

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------- internal

    def _complete_initial_cycle(self) -> None:
        with self._state_lock:
            if self._initial_cycle_done:
                return
            self._initial_cycle_done = True
        logger.info("Initial fetch cycle complete")
        if self._on_started is not None:
            self._context.post(self._on_started, key="started")
