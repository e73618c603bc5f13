"""
Market Data Types

Core market data types flowing through the candle pipeline.
Prices are integers in minor units (scale 100), timestamps are UTC-aware.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Tick:
    """One observed trade from the input stream"""
    ticker: str
    timestamp: datetime
    price: int
    count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and debugging"""
        return {
            "ticker": self.ticker,
            "timestamp": self.timestamp.isoformat(),
            "price": self.price,
            "count": self.count,
        }


@dataclass
class Candle:
    """OHLC summary of one ticker within one time window"""
    ticker: str
    window_start: datetime
    price_open: int
    price_high: int
    price_low: int
    price_close: int

    @classmethod
    def open_with(cls, tick: Tick, window_start: datetime) -> "Candle":
        """Start a candle from the first tick of a window"""
        return cls(
            ticker=tick.ticker,
            window_start=window_start,
            price_open=tick.price,
            price_high=tick.price,
            price_low=tick.price,
            price_close=tick.price,
        )

    def add_tick(self, tick: Tick) -> None:
        """Fold a later tick of the same window into this candle"""
        if tick.price > self.price_high:
            self.price_high = tick.price
        if tick.price < self.price_low:
            self.price_low = tick.price
        self.price_close = tick.price

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and debugging"""
        return {
            "ticker": self.ticker,
            "window_start": self.window_start.isoformat(),
            "open": self.price_open,
            "high": self.price_high,
            "low": self.price_low,
            "close": self.price_close,
        }
