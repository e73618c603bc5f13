"""
Candle Pipeline - Typed Message Catalog

Data types passed between the reader, aggregators and writers.
"""

from schemas.market_data import Tick, Candle

__all__ = [
    "Tick",
    "Candle",
]
