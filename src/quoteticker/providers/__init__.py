"""Quote source registry."""

from __future__ import annotations

from quoteticker.config import QuoteSourceType
from quoteticker.providers.base import BaseQuoteSource

# Lazy registry: actual classes imported on demand to avoid pulling in
# optional dependencies when they aren't used.
SOURCE_CLASSES: dict[QuoteSourceType, str] = {
    QuoteSourceType.YAHOO: "quoteticker.providers.yahoo.YahooQuoteSource",
    QuoteSourceType.FINNHUB: "quoteticker.providers.finnhub.FinnhubQuoteSource",
    QuoteSourceType.POLYGON: "quoteticker.providers.polygon.PolygonQuoteSource",
    QuoteSourceType.MOCK: "quoteticker.providers.mock.MockQuoteSource",
}


def create_source(
    source_type: QuoteSourceType,
    **kwargs,
) -> BaseQuoteSource:
    """Instantiate a quote source by type, forwarding kwargs to its constructor."""
    import importlib

    dotted = SOURCE_CLASSES[source_type]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseQuoteSource", "SOURCE_CLASSES", "create_source"]
