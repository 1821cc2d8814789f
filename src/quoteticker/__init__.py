"""quoteticker — rotating single-symbol stock ticker core.

Refreshes the latest intraday price for a fixed set of symbols on one
timer, shows one symbol at a time on another, and flags symbols whose
market is outside its active hours.

Quick start::

    from quoteticker import create_ticker_from_env
    ticker = create_ticker_from_env(sink=lambda q: print(q.ticker, q.price))
    ticker.start()
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from quoteticker.cache import QuoteCache
from quoteticker.config import (
    QuoteSourceType,
    TickerConfig,
    load_config_from_env,
    load_settings_file,
)
from quoteticker.display import (
    DisplayBoard,
    DisplaySink,
    InlineContext,
    PresentationContext,
    QueuedContext,
)
from quoteticker.errors import ConfigError, TickerError, TickerErrorCode
from quoteticker.fetcher import CycleReport, Fetcher
from quoteticker.log import setup_logger
from quoteticker.market_clock import (
    ActiveHours,
    MarketHoursTable,
    is_market_open,
    resolve_market_code,
    resolve_timezone,
)
from quoteticker.models.display_quote import DisplayQuote, Movement
from quoteticker.models.sample import Sample
from quoteticker.rotator import Rotator
from quoteticker.scheduler import PeriodicTask, Scheduler
from quoteticker.ticker import QuoteSourceChain, QuoteTicker

__version__ = "0.1.0"

__all__ = [
    # Ticker
    "QuoteTicker",
    "create_ticker_from_env",
    # Components
    "QuoteCache",
    "Fetcher",
    "CycleReport",
    "Rotator",
    "Scheduler",
    "PeriodicTask",
    "QuoteSourceChain",
    # Presentation
    "DisplayBoard",
    "DisplaySink",
    "PresentationContext",
    "InlineContext",
    "QueuedContext",
    # Market clock
    "ActiveHours",
    "MarketHoursTable",
    "is_market_open",
    "resolve_market_code",
    "resolve_timezone",
    # Config
    "TickerConfig",
    "QuoteSourceType",
    "load_config_from_env",
    "load_settings_file",
    # Errors
    "TickerError",
    "TickerErrorCode",
    "ConfigError",
    # Models
    "DisplayQuote",
    "Movement",
    "Sample",
    # Logging
    "setup_logger",
]


def create_ticker_from_env(
    sink: DisplaySink,
    *,
    env_path: Path | str | None = None,
    settings_path: Path | str | None = None,
    context: PresentationContext | None = None,
    on_started: Callable[[], None] | None = None,
) -> QuoteTicker:
    """Zero-config factory — reads settings from ``.env`` and env vars.

    An optional JSON ``settings_path`` supplies base values that the
    environment overrides. See ``load_config_from_env`` for the variables.
    The returned ticker is not started.

    Raises:
        ConfigError: If the environment holds an invalid configuration.
    """
    config = load_config_from_env(env_path, settings_path)
    return QuoteTicker(config, sink, context=context, on_started=on_started)
