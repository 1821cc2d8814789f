"""Intraday price sample model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Sample:
    """Single intraday sample as reported by a quote source.

    Attributes:
        timestamp: Sample timestamp (UTC, start of the interval).
        close: Closing price of the interval.
    """

    timestamp: datetime
    close: float
