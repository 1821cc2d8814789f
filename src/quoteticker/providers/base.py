"""Abstract base class for quote sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from quoteticker.models.sample import Sample

DEFAULT_INTERVAL = "15min"
DEFAULT_RANGE = "1d"


class BaseQuoteSource(ABC):
    """Abstract base for all quote sources.

    A source answers a single question: the recent intraday samples for a
    symbol. Failures of any kind surface as ``TickerError`` so callers can
    decide whether to fall through to another source.
    """

    name: str = "base"

    @abstractmethod
    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        """Fetch recent intraday samples.

        Args:
            symbol: Ticker symbol, exchange suffix included ("VWS.CO").
            interval: Sample size — "1min", "5min", "15min", "1hour".
            range_: Lookback — "1d" (most recent trading day) or "5d".

        Returns:
            Samples ordered by timestamp ascending; the last element is the
            most recent. Empty when the source has nothing for the range.
        """
        ...

    def close(self) -> None:
        """Release network resources. No-op by default."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def last_session(samples: list[Sample]) -> list[Sample]:
    """Keep only the samples sharing the latest sample's UTC date.

    Sources queried by timestamp window rather than by trading-day range
    use a lookback long enough to span weekends, then trim with this.
    """
    if not samples:
        return []
    day = samples[-1].timestamp.date()
    return [s for s in samples if s.timestamp.date() == day]
