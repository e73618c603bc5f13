"""
Persistence

Serializes closed candles to per-span output files.
"""

from dataflow.persistence.sink import CsvCandleSink, format_candle, format_window_start

__all__ = ["CsvCandleSink", "format_candle", "format_window_start"]
