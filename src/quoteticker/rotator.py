"""Rotator — round-robin selection of the one symbol on display."""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from quoteticker.cache import QuoteCache
from quoteticker.display import DisplayBoard

logger = logging.getLogger(__name__)


class Rotator:
    """Cycles through the tracked symbols in fixed order, forever.

    Rotation ignores market hours; a closed market's symbol is still shown,
    carrying its frozen price and ``market_open=False``.
    """

    def __init__(
        self,
        symbols: Sequence[str],
        cache: QuoteCache,
        board: DisplayBoard,
    ) -> None:
        self.symbols = tuple(s.upper() for s in symbols)
        self.cache = cache
        self.board = board
        self._index = 0
        self._lock = threading.Lock()

    def rotate_once(self) -> str | None:
        """Advance to the next symbol and publish it if the cache has it.

        Returns the selected symbol (None when nothing is tracked). A symbol
        without a cache entry is skipped over; the display keeps its
        previous item.
        """
        if not self.symbols:
            return None

        with self._lock:
            symbol = self.symbols[self._index]
            self._index = (self._index + 1) % len(self.symbols)

        if self.cache.get(symbol) is None:
            logger.debug("No quote for %s yet, keeping current display", symbol)
            return symbol

        self.board.show(symbol)
        return symbol
