"""Presentation boundary — everything that reaches the sink goes through here.

Fetches complete on worker threads and rotation ticks fire on a timer
thread, but the sink (a UI layer) may only be touched from one context.
``DisplayBoard`` posts every display change to a ``PresentationContext``;
the context decides where the callback runs.

- ``InlineContext`` runs callbacks immediately on the posting thread.
  Suitable for headless use and tests.
- ``QueuedContext`` parks callbacks until the presentation thread calls
  ``drain()`` (or ``run()``). Posting again with the same key replaces the
  pending callback, so bursts of writes to one symbol coalesce.
"""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import TYPE_CHECKING, Callable, Hashable

from quoteticker.models.display_quote import DisplayQuote

if TYPE_CHECKING:
    from quoteticker.cache import QuoteCache

logger = logging.getLogger(__name__)

DisplaySink = Callable[[DisplayQuote], None]


class PresentationContext(ABC):
    """Where display callbacks are allowed to run."""

    @abstractmethod
    def post(self, callback: Callable[[], None], key: Hashable | None = None) -> None:
        """Schedule ``callback`` on the presentation context.

        Args:
            callback: Zero-argument callable.
            key: Coalescing key. A pending callback with the same key is
                replaced. ``None`` never coalesces.
        """
        ...


class InlineContext(PresentationContext):
    """Runs callbacks synchronously on the caller's thread."""

    def post(self, callback: Callable[[], None], key: Hashable | None = None) -> None:
        callback()


class QueuedContext(PresentationContext):
    """Holds callbacks until the presentation thread drains them.

    Callbacks run in the order their key was first posted; a replaced
    callback keeps its original slot.
    """

    def __init__(self) -> None:
        self._pending: OrderedDict[Hashable, Callable[[], None]] = OrderedDict()
        self._lock = threading.Lock()
        self._wake = threading.Event()
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def post(self, callback: Callable[[], None], key: Hashable | None = None) -> None:
        with self._lock:
            if key is None:
                key = ("_anon", next(self._seq))
            self._pending[key] = callback
        self._wake.set()

    def drain(self) -> int:
        """Run every pending callback on the calling thread. Returns the count."""
        with self._lock:
            callbacks = list(self._pending.values())
            self._pending.clear()
            self._wake.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Display callback failed")
        return len(callbacks)

    def run(self, stop: threading.Event, poll_interval: float = 0.1) -> None:
        """Drain on the calling thread until ``stop`` is set."""
        while not stop.is_set():
            self._wake.wait(poll_interval)
            self.drain()


class DisplayBoard:
    """Owns the single currently displayed symbol and feeds the sink.

    ``show`` selects a symbol (rotation); ``refresh`` re-publishes a symbol
    after a cache write, but only if it is still the one on display. Both
    read the cache when the callback runs, so the sink always receives the
    latest record.
    """

    def __init__(
        self,
        cache: QuoteCache,
        sink: DisplaySink,
        context: PresentationContext | None = None,
    ) -> None:
        self._cache = cache
        self._sink = sink
        self._context = context or InlineContext()
        # Selection check and sink call are one step; inline contexts run
        # callbacks on several threads at once
        self._lock = threading.RLock()
        self._current: str | None = None
        cache.subscribe(self.refresh)

    @property
    def current(self) -> str | None:
        return self._current

    @property
    def context(self) -> PresentationContext:
        return self._context

    def show(self, symbol: str) -> None:
        symbol = symbol.upper()
        self._context.post(lambda: self._present(symbol, select=True), key="show")

    def refresh(self, symbol: str) -> None:
        symbol = symbol.upper()
        self._context.post(
            lambda: self._present(symbol, select=False), key=("refresh", symbol),
        )

    def _present(self, symbol: str, select: bool) -> None:
        if self._cache.get(symbol) is None:
            # Nothing to show yet: keep whatever is on screen
            return
        with self._lock:
            if not select and symbol != self._current:
                return
            # Re-read under the lock so the sink never gets an older record
            quote = self._cache.get(symbol)
            if select:
                self._current = symbol
            logger.debug("Displaying %s %s (%s)", symbol, quote.price, quote.movement.value)
            self._sink(quote)
