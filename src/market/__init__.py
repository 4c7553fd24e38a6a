"""
Market data — живые цены инструментов.
"""

from src.market.price_source import (
    DEFAULT_SYMBOL,
    INSTRUMENTS,
    BybitPriceSource,
    Instrument,
    PriceSourceError,
    find_instrument,
    resolve_market,
)

__all__ = [
    "DEFAULT_SYMBOL",
    "INSTRUMENTS",
    "BybitPriceSource",
    "Instrument",
    "PriceSourceError",
    "find_instrument",
    "resolve_market",
]
