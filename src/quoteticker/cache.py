"""Quote cache — latest display record per symbol.

Records are immutable ``DisplayQuote`` values replaced wholesale on every
write. Writers for one symbol serialize on a per-symbol lock; writers for
different symbols never contend. Readers take no lock and always see a
complete record.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from quoteticker.models.display_quote import (
    DisplayQuote,
    classify_movement,
    round_price,
)

ChangeListener = Callable[[str], None]


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class QuoteCache:
    """Shared mapping from symbol to its latest ``DisplayQuote``.

    Entries are created on the first write for a symbol and never removed.
    Symbol keys are case-insensitive.
    """

    def __init__(self) -> None:
        self._records: dict[str, DisplayQuote] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a callable invoked with the symbol after every write."""
        self._listeners.append(listener)

    # ---------------------------------------------------------------- reads

    def get(self, symbol: str) -> DisplayQuote | None:
        return self._records.get(symbol.upper())

    def symbols(self) -> list[str]:
        return list(self._records)

    def snapshot(self) -> dict[str, DisplayQuote]:
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._records

    # --------------------------------------------------------------- writes

    def record_fetch(
        self,
        symbol: str,
        raw_price: float | Decimal,
        sample_timestamp: datetime,
        market_open: bool,
    ) -> DisplayQuote:
        """Store a freshly fetched price and classify its movement.

        Movement compares against the immediately prior cached price; the
        first real price for a symbol (including one that replaces a
        closed-market placeholder) is ``INITIAL``.
        """
        key = symbol.upper()
        price = round_price(raw_price)
        with self._lock_for(key):
            prior = self._records.get(key)
            previous = None if prior is None or prior.placeholder else prior.price
            quote = DisplayQuote(
                ticker=key,
                price=price,
                as_of=_as_utc(sample_timestamp),
                movement=classify_movement(previous, price),
                market_open=market_open,
            )
            self._records[key] = quote
        self._notify(key)
        return quote

    def mark_closed(self, symbol: str, at: datetime) -> DisplayQuote:
        """Flag the symbol's market as closed, freezing its last price.

        Without a prior record a placeholder is stored (price 0, INITIAL)
        so rotation has something to show.
        """
        key = symbol.upper()
        with self._lock_for(key):
            prior = self._records.get(key)
            if prior is None:
                quote = DisplayQuote.closed_placeholder(key, _as_utc(at))
            else:
                quote = prior.with_market_open(False)
            self._records[key] = quote
        self._notify(key)
        return quote

    # ------------------------------------------------------------- internal

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _notify(self, key: str) -> None:
        for listener in self._listeners:
            listener(key)
