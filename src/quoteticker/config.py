"""Quote ticker configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from quoteticker.errors import ConfigError
from quoteticker.market_clock import ActiveHours, MarketHoursTable, parse_clock_time

DEFAULT_SYMBOLS = ("MSFT", "PLTR", "VWS.CO", "ISS.CO", "NETC.CO")


class QuoteSourceType(Enum):
    """Supported quote source backends."""

    YAHOO = "yahoo"
    FINNHUB = "finnhub"
    POLYGON = "polygon"
    MOCK = "mock"


@dataclass
class TickerConfig:
    """Configuration for QuoteTicker.

    Attributes:
        symbols: Tracked symbols, fixed for the lifetime of the ticker.
        polling_interval: Seconds between fetch cycles.
        rotation_interval: Seconds between display rotations.
        active_hours: Default daily window for markets without an override.
        markets: Per-market overrides keyed by market code ("DK", "US", ...).
        sources: Quote source backends ordered by priority.
        quality_checks: Whether to run sanity checks on fetched samples.
        max_workers: Upper bound on concurrent per-symbol fetches.
        request_timeout: HTTP timeout in seconds for REST sources.
        finnhub_api_key: Finnhub API key.
        polygon_api_key: Polygon.io API key.
    """

    symbols: tuple[str, ...] = DEFAULT_SYMBOLS
    polling_interval: float = 2.0
    rotation_interval: float = 15.0
    active_hours: ActiveHours = field(default_factory=ActiveHours)
    markets: dict[str, ActiveHours] = field(default_factory=dict)
    sources: list[QuoteSourceType] = field(
        default_factory=lambda: [QuoteSourceType.YAHOO]
    )
    quality_checks: bool = True
    max_workers: int = 8
    request_timeout: float = 10.0

    finnhub_api_key: str | None = None
    polygon_api_key: str | None = None

    def hours_table(self) -> MarketHoursTable:
        return MarketHoursTable(default=self.active_hours, markets=self.markets)

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot drive a ticker."""
        if not self.symbols:
            raise ConfigError("At least one symbol must be tracked")
        if self.polling_interval <= 0:
            raise ConfigError("PollingInterval must be > 0")
        if self.rotation_interval <= 0:
            raise ConfigError("RotationInterval must be > 0")
        if self.active_hours.start == self.active_hours.end:
            raise ConfigError("ActiveHours Start/End cannot be equal")
        for code, window in self.markets.items():
            if window.start == window.end:
                raise ConfigError(f"Markets:{code} Start/End cannot be equal")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1")
        if not self.sources:
            raise ConfigError("At least one quote source is required")

    # ------------------------------------------------------------- loaders

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TickerConfig:
        """Build a config from a settings mapping.

        Accepts either the bare section or a document wrapping it under
        ``"Widget"``::

            {"Widget": {
                "PollingInterval": "00:00:02",
                "ActiveHours": {"Start": "09:00", "End": "17:00"},
                "Markets": {"US": {"Start": "15:30", "End": "22:00"}},
                "Symbols": ["MSFT", "VWS.CO"]
            }}
        """
        section = data.get("Widget", data)
        if not isinstance(section, Mapping):
            raise ConfigError("'Widget' must be an object")

        config = cls()
        try:
            if "Symbols" in section:
                config.symbols = parse_symbols(section["Symbols"])
            if "PollingInterval" in section:
                config.polling_interval = parse_interval(section["PollingInterval"])
            if "RotationInterval" in section:
                config.rotation_interval = parse_interval(section["RotationInterval"])
            if "ActiveHours" in section:
                config.active_hours = _parse_window(section["ActiveHours"])
            markets = section.get("Markets") or {}
            if not isinstance(markets, Mapping):
                raise ConfigError("'Markets' must be an object")
            config.markets = {
                code.upper(): _parse_window(window) for code, window in markets.items()
            }
            if "Sources" in section:
                config.sources = parse_sources(section["Sources"])
            if "MaxWorkers" in section:
                config.max_workers = int(section["MaxWorkers"])
        except ConfigError:
            raise
        except (TypeError, ValueError, KeyError) as exc:
            raise ConfigError(f"Invalid ticker settings: {exc}") from exc

        config.finnhub_api_key = section.get("FinnhubApiKey")
        config.polygon_api_key = section.get("PolygonApiKey")
        return config


def parse_interval(value: Any) -> float:
    """Parse an interval into seconds.

    Numbers are seconds. Strings are ``"HH:MM:SS"``, ``"MM:SS"`` or a plain
    number of seconds.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid interval: {value!r}")

    parts = value.strip().split(":")
    if len(parts) == 1:
        return float(parts[0])
    if len(parts) == 2:
        minutes, seconds = parts
        return int(minutes) * 60 + float(seconds)
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    raise ValueError(f"Invalid interval: {value!r}")


def parse_symbols(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    symbols: list[str] = []
    for raw in value:
        s = str(raw).strip().upper()
        if s and s not in symbols:
            symbols.append(s)
    return tuple(symbols)


def parse_sources(value: Any) -> list[QuoteSourceType]:
    if isinstance(value, str):
        value = value.split(",")
    return [QuoteSourceType(str(name).strip().lower()) for name in value if str(name).strip()]


def parse_markets(value: str) -> dict[str, ActiveHours]:
    """Parse ``"DK=09:00-17:00,US=15:30-22:00"``."""
    markets: dict[str, ActiveHours] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        code, _, window = item.partition("=")
        if not window:
            raise ValueError(f"Invalid market entry '{item}': expected CODE=HH:MM-HH:MM")
        markets[code.strip().upper()] = ActiveHours.parse(window)
    return markets


def _parse_window(value: Any) -> ActiveHours:
    if isinstance(value, str):
        return ActiveHours.parse(value)
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid active hours: {value!r}")
    defaults = ActiveHours()
    start = value.get("Start", value.get("start"))
    end = value.get("End", value.get("end"))
    return ActiveHours(
        start=_parse_time(start) if start is not None else defaults.start,
        end=_parse_time(end) if end is not None else defaults.end,
    )


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    return parse_clock_time(str(value))


def load_settings_file(path: Path | str) -> TickerConfig:
    """Build a config from a JSON settings file such as ``appsettings.json``.

    Raises:
        ConfigError: If the file cannot be read or is not a JSON object.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Settings file {path} must hold a JSON object")
    return TickerConfig.from_dict(data)


def load_config_from_env(
    env_path: Path | str | None = None,
    settings_path: Path | str | None = None,
) -> TickerConfig:
    """Read the ticker configuration from ``.env`` and the environment.

    When ``settings_path`` names an existing JSON file it is loaded first
    (see ``TickerConfig.from_dict``) and the variables below override it.
    A missing settings file is skipped.

    Environment variables:
        TICKER_SYMBOLS: Comma-separated symbols (default: built-in list).
        TICKER_POLLING_INTERVAL: Seconds or "HH:MM:SS" (default: 2).
        TICKER_ROTATION_INTERVAL: Seconds or "HH:MM:SS" (default: 15).
        TICKER_ACTIVE_HOURS: Default window, "09:00-17:00".
        TICKER_MARKETS: Overrides, "DK=09:00-17:00,US=15:30-22:00".
        TICKER_SOURCES: Comma-separated source list (default: "yahoo").
        TICKER_MAX_WORKERS: Concurrent fetch limit (default: 8).
        FINNHUB_API_KEY: Finnhub API key.
        POLYGON_API_KEY: Polygon.io API key.

    Raises:
        ConfigError: On unparsable or invalid values.
    """
    load_dotenv(env_path, override=False)

    if settings_path is not None and Path(settings_path).exists():
        config = load_settings_file(settings_path)
    else:
        config = TickerConfig()
    try:
        if os.getenv("TICKER_SYMBOLS"):
            config.symbols = parse_symbols(os.environ["TICKER_SYMBOLS"])
        if os.getenv("TICKER_POLLING_INTERVAL"):
            config.polling_interval = parse_interval(os.environ["TICKER_POLLING_INTERVAL"])
        if os.getenv("TICKER_ROTATION_INTERVAL"):
            config.rotation_interval = parse_interval(os.environ["TICKER_ROTATION_INTERVAL"])
        if os.getenv("TICKER_ACTIVE_HOURS"):
            config.active_hours = ActiveHours.parse(os.environ["TICKER_ACTIVE_HOURS"])
        if os.getenv("TICKER_MARKETS"):
            config.markets = parse_markets(os.environ["TICKER_MARKETS"])
        if os.getenv("TICKER_SOURCES"):
            config.sources = parse_sources(os.environ["TICKER_SOURCES"])
        config.max_workers = int(os.getenv("TICKER_MAX_WORKERS", str(config.max_workers)))
    except ValueError as exc:
        raise ConfigError(f"Invalid ticker environment: {exc}") from exc

    config.finnhub_api_key = os.getenv("FINNHUB_API_KEY") or config.finnhub_api_key
    config.polygon_api_key = os.getenv("POLYGON_API_KEY") or config.polygon_api_key
    config.validate()
    return config
