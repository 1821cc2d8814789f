"""QuoteTicker — wires sources, cache, fetcher, rotator and scheduler."""

from __future__ import annotations

import logging
from typing import Any, Callable

from quoteticker.cache import QuoteCache
from quoteticker.config import QuoteSourceType, TickerConfig
from quoteticker.display import DisplayBoard, DisplaySink, PresentationContext
from quoteticker.errors import TickerError, TickerErrorCode
from quoteticker.fetcher import Fetcher
from quoteticker.models.display_quote import DisplayQuote
from quoteticker.models.sample import Sample
from quoteticker.providers import create_source
from quoteticker.providers.base import DEFAULT_INTERVAL, DEFAULT_RANGE, BaseQuoteSource
from quoteticker.quality import validate_samples
from quoteticker.rotator import Rotator
from quoteticker.scheduler import Scheduler

logger = logging.getLogger(__name__)


class QuoteSourceChain(BaseQuoteSource):
    """Ordered sources with fallback: source -> validate -> next source.

    Retryable errors (and failed quality checks) fall through to the next
    source; non-retryable errors are raised immediately.
    """

    name = "chain"

    def __init__(self, sources: list[BaseQuoteSource], validate: bool = True) -> None:
        if not sources:
            raise ValueError("QuoteSourceChain needs at least one source")
        self.sources = sources
        self.validate = validate

    def get_recent_samples(
        self,
        symbol: str,
        interval: str = DEFAULT_INTERVAL,
        range_: str = DEFAULT_RANGE,
    ) -> list[Sample]:
        last_error: TickerError | None = None
        for source in self.sources:
            try:
                samples = source.get_recent_samples(symbol, interval, range_)

                if self.validate:
                    result = validate_samples(samples)
                    if not result.passed:
                        msgs = "; ".join(c.message for c in result.failed_checks)
                        raise TickerError(
                            f"Validation failed for {symbol} from {source.name}: {msgs}",
                            code=TickerErrorCode.VALIDATION_FAILED,
                            retryable=True,
                        )
                return samples

            except TickerError as e:
                if not e.retryable:
                    raise
                logger.debug("%s failed for %s, trying next source: %s", source.name, symbol, e)
                last_error = e
                continue

        raise last_error or TickerError(
            "All quote sources failed",
            code=TickerErrorCode.NO_DATA,
        )

    def close(self) -> None:
        for source in self.sources:
            source.close()

    def __repr__(self) -> str:
        return f"QuoteSourceChain({[s.name for s in self.sources]})"


def build_sources(config: TickerConfig) -> list[BaseQuoteSource]:
    sources: list[BaseQuoteSource] = []
    for st in config.sources:
        kwargs: dict[str, Any] = {}
        if st == QuoteSourceType.YAHOO:
            kwargs["timeout"] = config.request_timeout
        elif st == QuoteSourceType.FINNHUB and config.finnhub_api_key:
            kwargs["api_key"] = config.finnhub_api_key
        elif st == QuoteSourceType.POLYGON:
            kwargs["timeout"] = config.request_timeout
            if config.polygon_api_key:
                kwargs["api_key"] = config.polygon_api_key
        sources.append(create_source(st, **kwargs))
    return sources


class QuoteTicker:
    """The running ticker: one symbol on display, all symbols refreshed.

    Usage::

        from quoteticker import create_ticker_from_env
        ticker = create_ticker_from_env(sink=print)
        ticker.start()
        ...
        ticker.close()

    Args:
        config: Ticker configuration; validated here.
        sink: Receives the displayed ``DisplayQuote`` whenever it changes.
        context: Presentation context the sink runs on (inline by default).
        source: Explicit quote source; built from ``config.sources`` if None.
        on_started: Called once, on the presentation context, when the
            initial fetch cycle has completed.

    Raises:
        ConfigError: If the configuration is invalid.
    """

    def __init__(
        self,
        config: TickerConfig,
        sink: DisplaySink,
        *,
        context: PresentationContext | None = None,
        source: BaseQuoteSource | None = None,
        on_started: Callable[[], None] | None = None,
    ) -> None:
        config.validate()
        self.config = config

        self.source = source or QuoteSourceChain(
            build_sources(config), validate=config.quality_checks,
        )
        self.cache = QuoteCache()
        self.board = DisplayBoard(self.cache, sink, context)
        self.fetcher = Fetcher(
            config.symbols,
            self.source,
            self.cache,
            config.hours_table(),
            max_workers=config.max_workers,
            on_started=on_started,
            context=self.board.context,
        )
        self.rotator = Rotator(config.symbols, self.cache, self.board)
        self.scheduler = Scheduler(
            self.fetcher,
            self.rotator,
            polling_interval=config.polling_interval,
            rotation_interval=config.rotation_interval,
        )

    @property
    def starting(self) -> bool:
        return self.fetcher.starting

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self, wait: bool = True) -> None:
        logger.info(
            "Starting ticker for %d symbols via %r", len(self.config.symbols), self.source,
        )
        self.scheduler.start(wait=wait)

    def stop(self) -> None:
        self.scheduler.stop()

    def close(self) -> None:
        self.scheduler.close()
        self.source.close()

    def quote(self, symbol: str) -> DisplayQuote | None:
        return self.cache.get(symbol)

    def __enter__(self) -> QuoteTicker:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
