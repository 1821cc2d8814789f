"""Quote ticker models."""

from quoteticker.models.display_quote import DisplayQuote, Movement, round_price
from quoteticker.models.sample import Sample

__all__ = [
    "DisplayQuote",
    "Movement",
    "Sample",
    "round_price",
]
