"""Yahoo Finance quote source (public chart endpoint, no API key).

Uses the v8 chart REST endpoint through ``requests`` and parses the
column-oriented response with pandas.
"""

from __future__ import annotations

from typing import Any

import certifi
import pandas as pd
import requests

from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.models.sample import Sample
from quoteticker.providers.base import DEFAULT_INTERVAL, DEFAULT_RANGE, BaseQuoteSource

USER_AGENT = "Mozilla/5.0 (compatible; quoteticker/0.1)"


class YahooQuoteSource(BaseQuoteSource):
    """Fetch intraday samples from Yahoo Finance.

    Symbols use Yahoo's exchange suffixes as-is ("VWS.CO", "ERIC-B.ST").
    """

    name = "yahoo"
    base_url = "https://query1.finance.yahoo.com/v8/finance/chart"

    _INTERVAL_MAP: dict[str, str] = {
        "1min": "1m",
        "5min": "5m",
        "15min": "15m",
        "1hour": "60m",
    }
    _RANGES = ("1d", "5d")

    def __init__(
        self,
        session: Any | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.verify = certifi.where()
            session.headers.update({"User-Agent": USER_AGENT})
        self.session = session

    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        if interval not in self._INTERVAL_MAP:
            raise TickerError(
                f"Invalid interval: {interval}. Valid: {list(self._INTERVAL_MAP)}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )
        if range_ not in self._RANGES:
            raise TickerError(
                f"Invalid range: {range_}. Valid: {list(self._RANGES)}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )

        try:
            resp = self.session.get(
                f"{self.base_url}/{symbol.upper()}",
                params={"interval": self._INTERVAL_MAP[interval], "range": range_},
                timeout=self.timeout,
            )
            self._check_response(resp, symbol)
            return self._parse_chart(resp.json())
        except TickerError:
            raise
        except requests.Timeout as exc:
            raise TickerError(
                f"Yahoo request timed out for {symbol}",
                code=TickerErrorCode.TIMEOUT,
                retryable=True,
            ) from exc
        except Exception as exc:
            raise TickerError(
                f"Yahoo get_recent_samples failed: {exc}",
                code=TickerErrorCode.PROVIDER_ERROR,
                retryable=True,
            ) from exc

    def close(self) -> None:
        self.session.close()

    # ---- helpers ----

    @staticmethod
    def _parse_chart(payload: dict[str, Any]) -> list[Sample]:
        chart = payload.get("chart") or {}
        error = chart.get("error")
        if error:
            raise TickerError(
                f"Yahoo chart error: {error.get('description') or error.get('code')}",
                code=TickerErrorCode.NOT_FOUND,
            )

        results = chart.get("result") or []
        if not results:
            return []
        result = results[0]

        timestamps = result.get("timestamp") or []
        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        closes = quotes[0].get("close") or []
        if not timestamps or len(timestamps) != len(closes):
            return []

        frame = pd.DataFrame({
            "timestamp": pd.to_datetime(timestamps, unit="s", utc=True),
            "close": pd.to_numeric(pd.Series(closes, dtype="object"), errors="coerce"),
        })
        # Yahoo pads the open interval with nulls
        frame = frame.dropna(subset=["close"]).sort_values("timestamp")

        return [
            Sample(
                timestamp=row.timestamp.to_pydatetime(),
                close=float(row.close),
            )
            for row in frame.itertuples(index=False)
        ]

    @staticmethod
    def _check_response(resp: Any, symbol: str) -> None:
        if resp.status_code == 429:
            raise TickerError(
                "Yahoo rate limited",
                code=TickerErrorCode.RATE_LIMITED,
                retryable=True,
            )
        if resp.status_code in (401, 403):
            raise TickerError(
                "Yahoo refused the request",
                code=TickerErrorCode.AUTH_FAILED,
            )
        if resp.status_code == 404:
            raise TickerError(
                f"Symbol {symbol} not found on Yahoo",
                code=TickerErrorCode.NOT_FOUND,
            )
        resp.raise_for_status()
