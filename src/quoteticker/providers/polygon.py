"""Polygon.io quote source.

Supports both the official ``polygon-api-client`` SDK and a direct REST
fallback using ``requests``.

Install the optional dependency:
    pip install quoteticker[polygon]
"""

from __future__ import annotations

import os
from datetime import date, datetime, timedelta, timezone
from typing import Any

from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.models.sample import Sample
from quoteticker.providers.base import (
    DEFAULT_INTERVAL,
    DEFAULT_RANGE,
    BaseQuoteSource,
    last_session,
)

try:
    from polygon import RESTClient
    _SDK_AVAILABLE = True
except ImportError:
    _SDK_AVAILABLE = False


class PolygonQuoteSource(BaseQuoteSource):
    """Fetch intraday aggregates from Polygon.io (US listings only)."""

    name = "polygon"
    base_url = "https://api.polygon.io"

    _TF_MAP: dict[str, tuple[int, str]] = {
        "1min": (1, "minute"),
        "5min": (5, "minute"),
        "15min": (15, "minute"),
        "1hour": (1, "hour"),
    }
    _LOOKBACK_DAYS: dict[str, int] = {"1d": 4, "5d": 9}

    def __init__(self, api_key: str | None = None, timeout: float = 10.0) -> None:
        self.api_key = api_key or os.getenv("POLYGON_API_KEY")
        if not self.api_key:
            raise TickerError(
                "Polygon API key required. Set POLYGON_API_KEY env var or pass api_key.",
                code=TickerErrorCode.AUTH_FAILED,
            )
        self.timeout = timeout

        if _SDK_AVAILABLE:
            self.client: Any = RESTClient(self.api_key)
        else:
            import certifi
            import requests

            self.client = None
            self.session = requests.Session()
            self.session.verify = certifi.where()

    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        if interval not in self._TF_MAP:
            raise TickerError(
                f"Invalid interval: {interval}. Valid: {list(self._TF_MAP)}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )
        if range_ not in self._LOOKBACK_DAYS:
            raise TickerError(
                f"Invalid range: {range_}",
                code=TickerErrorCode.PROVIDER_ERROR,
            )
        mult, span = self._TF_MAP[interval]
        end = datetime.now(timezone.utc).date()
        start = end - timedelta(days=self._LOOKBACK_DAYS[range_])

        try:
            if self.client is not None:
                samples = self._samples_sdk(symbol, start, end, mult, span)
            else:
                samples = self._samples_rest(symbol, start, end, mult, span)
        except TickerError:
            raise
        except Exception as exc:
            raise TickerError(
                f"Polygon get_recent_samples failed: {exc}",
                code=TickerErrorCode.PROVIDER_ERROR,
                retryable=True,
            ) from exc

        return last_session(samples) if range_ == "1d" else samples

    def close(self) -> None:
        if self.client is None:
            self.session.close()

    def _samples_sdk(
        self, symbol: str, start: date, end: date, mult: int, span: str,
    ) -> list[Sample]:
        aggs = self.client.get_aggs(
            ticker=symbol.upper(),
            multiplier=mult,
            timespan=span,
            from_=start.isoformat(),
            to=end.isoformat(),
            adjusted=True,
            sort="asc",
            limit=50000,
        )
        return [
            Sample(
                timestamp=datetime.fromtimestamp(a.timestamp / 1000, tz=timezone.utc),
                close=float(a.close),
            )
            for a in aggs
        ]

    def _samples_rest(
        self, symbol: str, start: date, end: date, mult: int, span: str,
    ) -> list[Sample]:
        url = (
            f"{self.base_url}/v2/aggs/ticker/{symbol.upper()}"
            f"/range/{mult}/{span}/{start}/{end}"
        )
        params: dict[str, Any] = {
            "apiKey": self.api_key,
            "adjusted": "true",
            "sort": "asc",
            "limit": 50000,
        }
        resp = self.session.get(url, params=params, timeout=self.timeout)
        self._check_response(resp)
        return [
            Sample(
                timestamp=datetime.fromtimestamp(r["t"] / 1000, tz=timezone.utc),
                close=float(r["c"]),
            )
            for r in resp.json().get("results", [])
        ]

    def _check_response(self, resp: Any) -> None:
        if resp.status_code == 429:
            raise TickerError(
                "Polygon rate limited",
                code=TickerErrorCode.RATE_LIMITED,
                retryable=True,
            )
        if resp.status_code == 403:
            raise TickerError(
                "Polygon authentication failed",
                code=TickerErrorCode.AUTH_FAILED,
            )
        if resp.status_code == 404:
            raise TickerError(
                "Symbol not found on Polygon",
                code=TickerErrorCode.NOT_FOUND,
            )
        resp.raise_for_status()
