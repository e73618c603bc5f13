"""
Candle Aggregation

Buckets ticks into session-bounded OHLC windows, one aggregator per span.
"""

from dataflow.candle_aggregation.aggregator import CandleAggregator, WindowAggregator, span_label
from dataflow.candle_aggregation.session import DEFAULT_SESSION, Session

__all__ = ["CandleAggregator", "WindowAggregator", "Session", "DEFAULT_SESSION", "span_label"]
