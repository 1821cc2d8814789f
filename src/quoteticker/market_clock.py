"""Market clock — symbol-to-market resolution and active-hours checks.

No calendar data: a market counts as open when its local time-of-day lies
inside the configured daily window. Symbols map to markets through their
exchange suffix (``VWS.CO`` → ``DK``); anything without a known suffix is
treated as a US listing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timezone, tzinfo
from typing import Iterable, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MARKET_CODE = "US"

# Exchange suffix → market code
SUFFIX_MARKET_CODES: dict[str, str] = {
    ".CO": "DK",
    ".ST": "SE",
    ".OL": "NO",
    ".HE": "FI",
    ".DE": "DE",
    ".L": "UK",
    ".PA": "FR",
    ".AS": "NL",
    ".SW": "CH",
    ".TO": "CA",
    ".HK": "HK",
    ".T": "JP",
}

MARKET_TIMEZONES: dict[str, str] = {
    "US": "America/New_York",
    "DK": "Europe/Copenhagen",
    "SE": "Europe/Stockholm",
    "NO": "Europe/Oslo",
    "FI": "Europe/Helsinki",
    "DE": "Europe/Berlin",
    "UK": "Europe/London",
    "FR": "Europe/Paris",
    "NL": "Europe/Amsterdam",
    "CH": "Europe/Zurich",
    "CA": "America/Toronto",
    "HK": "Asia/Hong_Kong",
    "JP": "Asia/Tokyo",
}


def parse_clock_time(value: str) -> time:
    """Parse ``"HH:MM[:SS]"``, allowing a single-digit hour."""
    value = value.strip()
    hour, sep, rest = value.partition(":")
    if sep and len(hour) == 1:
        value = f"0{hour}:{rest}"
    return time.fromisoformat(value)


@dataclass(frozen=True)
class ActiveHours:
    """Daily window during which a market counts as open.

    Same-day only: ``start`` inclusive, ``end`` exclusive, no wraparound
    past midnight.
    """

    start: time = time(9, 0)
    end: time = time(17, 0)

    def is_within(self, moment: datetime | time) -> bool:
        t = moment.time() if isinstance(moment, datetime) else moment
        return self.start <= t < self.end

    @classmethod
    def parse(cls, value: str) -> ActiveHours:
        """Parse ``"09:00-17:00"`` (seconds optional, ``"9:00"`` accepted)."""
        try:
            start, end = value.split("-", 1)
            return cls(
                start=parse_clock_time(start),
                end=parse_clock_time(end),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid active hours '{value}': expected HH:MM-HH:MM") from exc


@dataclass(frozen=True)
class MarketHoursTable:
    """Per-market active hours plus the default window."""

    default: ActiveHours = field(default_factory=ActiveHours)
    markets: Mapping[str, ActiveHours] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Market codes are case-insensitive
        object.__setattr__(
            self, "markets", {k.upper(): v for k, v in self.markets.items()},
        )

    def window_for(self, market_code: str) -> ActiveHours:
        return self.markets.get(market_code.upper(), self.default)


def resolve_market_code(symbol: str) -> str:
    """Market code for a symbol, from its exchange suffix."""
    upper = symbol.strip().upper()
    dot = upper.rfind(".")
    if dot <= 0:
        return DEFAULT_MARKET_CODE
    return SUFFIX_MARKET_CODES.get(upper[dot:], DEFAULT_MARKET_CODE)


def _local_timezone() -> tzinfo:
    tz = datetime.now().astimezone().tzinfo
    return tz if tz is not None else timezone.utc


def resolve_timezone(market_code: str) -> tzinfo:
    """Timezone for a market code; host local time when unknown or unavailable."""
    name = MARKET_TIMEZONES.get(market_code.upper())
    if name is None:
        return _local_timezone()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.debug("Timezone %s unavailable, using local time for %s", name, market_code)
        return _local_timezone()


def is_market_open(
    symbol: str,
    instant: datetime,
    hours: MarketHoursTable,
) -> bool:
    """Check whether the symbol's market is inside its active-hours window.

    Args:
        symbol: Tracked symbol.
        instant: Moment to evaluate. Naive datetimes are taken as UTC.
        hours: Active-hours table.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)

    code = resolve_market_code(symbol)
    local = instant.astimezone(resolve_timezone(code))
    return hours.window_for(code).is_within(local)


def market_status(
    symbols: Iterable[str],
    instant: datetime,
    hours: MarketHoursTable,
) -> dict[str, bool]:
    """Open/closed flag for every symbol at one instant."""
    return {s: is_market_open(s, instant, hours) for s in symbols}
