"""Mock quote source for testing and demos — no network, no API keys."""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timedelta, timezone

from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.models.sample import Sample
from quoteticker.providers.base import DEFAULT_INTERVAL, DEFAULT_RANGE, BaseQuoteSource


class MockQuoteSource(BaseQuoteSource):
    """In-memory source that returns scripted or synthetic samples.

    Use ``set_samples`` for a fixed response, ``queue_prices`` to script a
    sequence of responses (one per call), or ``set_error`` to make a symbol
    fail. Symbols with nothing configured get a synthetic flat series.
    Every call is recorded in ``calls``.
    """

    name = "mock"

    def __init__(self, base_price: float = 150.0) -> None:
        self.base_price = base_price
        self.calls: list[str] = []
        self._samples: dict[str, list[Sample]] = {}
        self._scripted: dict[str, deque[list[Sample] | TickerError]] = {}
        self._errors: dict[str, TickerError] = {}
        self._lock = threading.Lock()

    # --- Pre-load helpers ---

    def set_samples(self, symbol: str, samples: list[Sample]) -> None:
        self._samples[symbol.upper()] = samples

    def set_price(self, symbol: str, price: float, at: datetime | None = None) -> None:
        at = at or datetime.now(timezone.utc)
        self.set_samples(symbol, [Sample(timestamp=at, close=price)])

    def queue_prices(self, symbol: str, *prices: float | None) -> None:
        """Script successive responses; ``None`` scripts an empty response."""
        queue = self._scripted.setdefault(symbol.upper(), deque())
        start = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
        for i, price in enumerate(prices, start=len(queue)):
            if price is None:
                queue.append([])
            else:
                ts = start + timedelta(minutes=15 * i)
                queue.append([Sample(timestamp=ts, close=price)])

    def queue_error(self, symbol: str, error: TickerError | None = None) -> None:
        """Script a single failing response."""
        self._scripted.setdefault(symbol.upper(), deque()).append(
            error or TickerError(f"mock failure for {symbol}", retryable=True)
        )

    def set_error(
        self,
        symbol: str,
        error: TickerError | None = None,
    ) -> None:
        self._errors[symbol.upper()] = error or TickerError(
            f"mock failure for {symbol}",
            code=TickerErrorCode.PROVIDER_ERROR,
            retryable=True,
        )

    def clear_error(self, symbol: str) -> None:
        self._errors.pop(symbol.upper(), None)

    def call_count(self, symbol: str) -> int:
        key = symbol.upper()
        with self._lock:
            return sum(1 for s in self.calls if s == key)

    # --- Source implementation ---

    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        key = symbol.upper()
        with self._lock:
            self.calls.append(key)
            if key in self._errors:
                raise self._errors[key]
            scripted = self._scripted.get(key)
            if scripted:
                response = scripted.popleft()
                if isinstance(response, TickerError):
                    raise response
                return list(response)
        if key in self._samples:
            return list(self._samples[key])
        return self._generate_samples(interval)

    # --- Synthetic data generation ---

    def _generate_samples(self, interval: str) -> list[Sample]:
        minutes = {"1min": 1, "5min": 5, "15min": 15, "1hour": 60}.get(interval, 15)
        open_ts = datetime.now(timezone.utc).replace(
            hour=14, minute=30, second=0, microsecond=0,
        )
        return [
            Sample(
                timestamp=open_ts + timedelta(minutes=i * minutes),
                close=round(self.base_price + (i % 5) * 0.1, 3),
            )
            for i in range(390 // minutes)
        ]
