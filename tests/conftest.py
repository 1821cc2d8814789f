"""Shared fixtures for quoteticker tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from quoteticker.cache import QuoteCache
from quoteticker.market_clock import MarketHoursTable
from quoteticker.models.sample import Sample
from quoteticker.providers.mock import MockQuoteSource

# 10:00 UTC on a Monday: 11:00 in Copenhagen (open), 05:00 in New York (closed)
EU_MORNING = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
# 16:00 UTC: 17:00 in Copenhagen (closed), 11:00 in New York (open)
US_MORNING = datetime(2024, 1, 15, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_source() -> MockQuoteSource:
    return MockQuoteSource()


@pytest.fixture
def cache() -> QuoteCache:
    return QuoteCache()


@pytest.fixture
def hours() -> MarketHoursTable:
    """Default 09:00-17:00 everywhere."""
    return MarketHoursTable()


@pytest.fixture
def sample_series() -> list[Sample]:
    """4 contiguous 15-min samples."""
    base = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
    return [
        Sample(timestamp=base + timedelta(minutes=15 * i), close=400.0 + i * 0.25)
        for i in range(4)
    ]


@pytest.fixture
def eu_morning() -> datetime:
    return EU_MORNING


@pytest.fixture
def us_morning() -> datetime:
    return US_MORNING


@pytest.fixture
def displayed() -> list:
    """Collects everything pushed to the presentation sink."""
    return []
