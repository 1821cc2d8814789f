"""Display quote model — the record held per symbol in the quote cache."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum

PRICE_QUANTUM = Decimal("0.001")


class Movement(Enum):
    """Price movement relative to the previously cached price."""

    INITIAL = "initial"
    UP = "up"
    DOWN = "down"
    UNCHANGED = "unchanged"


def round_price(raw: float | Decimal | str) -> Decimal:
    """Round a raw price to 3 fractional digits (banker's rounding).

    Floats go through ``str`` first so the shortest decimal representation
    is rounded, not the binary expansion.
    """
    if isinstance(raw, float):
        raw = str(raw)
    return Decimal(raw).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_EVEN)


def classify_movement(previous: Decimal | None, current: Decimal) -> Movement:
    if previous is None:
        return Movement.INITIAL
    if current > previous:
        return Movement.UP
    if current < previous:
        return Movement.DOWN
    return Movement.UNCHANGED


@dataclass(frozen=True)
class DisplayQuote:
    """Latest known price for one symbol, as shown by the ticker.

    Attributes:
        ticker: Tracked symbol.
        price: Price rounded to 3 decimals.
        as_of: Source-reported sample timestamp (UTC).
        movement: Classification against the prior cached price.
        market_open: Whether the market was judged open at the most recent
            fetch/flag decision.
        placeholder: True for a record created while the market was closed
            and before any successful fetch; its price is not a real quote.
    """

    ticker: str
    price: Decimal
    as_of: datetime
    movement: Movement
    market_open: bool
    placeholder: bool = False

    def with_market_open(self, market_open: bool) -> DisplayQuote:
        """Copy with only the market-open flag changed."""
        return replace(self, market_open=market_open)

    @classmethod
    def closed_placeholder(cls, ticker: str, at: datetime) -> DisplayQuote:
        return cls(
            ticker=ticker,
            price=round_price(0),
            as_of=at,
            movement=Movement.INITIAL,
            market_open=False,
            placeholder=True,
        )
