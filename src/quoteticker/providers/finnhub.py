"""Finnhub quote source.

Install the optional dependency:
    pip install quoteticker[finnhub]
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.models.sample import Sample
from quoteticker.providers.base import (
    DEFAULT_INTERVAL,
    DEFAULT_RANGE,
    BaseQuoteSource,
    last_session,
)

try:
    import finnhub
    _FINNHUB_AVAILABLE = True
except ImportError:
    _FINNHUB_AVAILABLE = False


class FinnhubQuoteSource(BaseQuoteSource):
    """Fetch intraday candles from Finnhub.io.

    Note: Finnhub's free tier has limited intraday coverage outside US
    listings. Put it behind Yahoo in a source chain for Nordic symbols.
    """

    name = "finnhub"

    _RESOLUTION_MAP: dict[str, str] = {
        "1min": "1",
        "5min": "5",
        "15min": "15",
        "1hour": "60",
    }
    # Calendar days to look back; wide enough to span a long weekend
    _LOOKBACK_DAYS: dict[str, int] = {"1d": 4, "5d": 9}

    def __init__(self, api_key: str | None = None, client: object | None = None) -> None:
        if client is not None:
            self.client = client
            return

        if not _FINNHUB_AVAILABLE:
            raise TickerError(
                "finnhub-python is not installed. Run: pip install quoteticker[finnhub]",
                code=TickerErrorCode.PROVIDER_ERROR,
            )

        self.api_key = api_key or os.getenv("FINNHUB_API_KEY")
        if not self.api_key:
            raise TickerError(
                "Finnhub API key required. Set FINNHUB_API_KEY env var or pass api_key.",
                code=TickerErrorCode.AUTH_FAILED,
            )

        self.client = finnhub.Client(api_key=self.api_key)

    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        if interval not in self._RESOLUTION_MAP:
            raise TickerError(
                f"Invalid interval: {interval}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )
        if range_ not in self._LOOKBACK_DAYS:
            raise TickerError(
                f"Invalid range: {range_}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )

        try:
            end = datetime.now(timezone.utc)
            start = end - timedelta(days=self._LOOKBACK_DAYS[range_])

            data = self.client.stock_candles(
                symbol.upper(),
                self._RESOLUTION_MAP[interval],
                int(start.timestamp()),
                int(end.timestamp()),
            )

            if data.get("s") != "ok":
                return []

            samples = [
                Sample(
                    timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                    close=float(close),
                )
                for ts, close in zip(data.get("t", []), data.get("c", []))
            ]
            samples.sort(key=lambda s: s.timestamp)
            return last_session(samples) if range_ == "1d" else samples
        except TickerError:
            raise
        except Exception as exc:
            raise TickerError(
                f"Finnhub get_recent_samples failed: {exc}",
                code=TickerErrorCode.PROVIDER_ERROR,
                retryable=True,
            ) from exc
