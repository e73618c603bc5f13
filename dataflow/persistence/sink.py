"""
CSV Candle Sink

Consumes closed candles from an aggregator and writes one record per candle:

    TICKER,WINDOW_START,OPEN,HIGH,LOW,CLOSE

A failed write is reported on the error slot but the sink keeps draining its
inbox so the aggregator feeding it never blocks. Completion therefore means
"drained", not "fully persisted".
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, TextIO

from dataflow.adapters.channel import Channel, ErrorSlot
from dataflow.codec.price import format_price
from dataflow.errors import SinkWriteError
from schemas.market_data import Candle

logger = logging.getLogger(__name__)

WINDOW_START_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_window_start(ts: datetime) -> str:
    """Fixed-offset UTC text, e.g. 2019-01-30T07:00:00Z"""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(WINDOW_START_FORMAT)


def format_candle(candle: Candle) -> str:
    """Render one output record, newline included"""
    return ",".join((
        candle.ticker,
        format_window_start(candle.window_start),
        format_price(candle.price_open),
        format_price(candle.price_high),
        format_price(candle.price_low),
        format_price(candle.price_close),
    )) + "\n"


class CsvCandleSink:
    """
    Writes candles from one aggregator to one text stream.

    The stream is owned by the caller; the sink never closes it.
    """

    def __init__(self, name: str, stream: TextIO, inbox: Channel[Candle], errors: ErrorSlot):
        self.name = name
        self.stream = stream
        self.inbox = inbox
        self.errors = errors

        # Metrics
        self._candles_written = 0
        self._write_failures = 0

    async def run(self) -> None:
        """Drain the inbox; returning is the completion signal"""
        logger.info(f"Starting candle sink {self.name}")

        async for candle in self.inbox:
            try:
                self.stream.write(format_candle(candle))
            except (OSError, ValueError) as e:
                # ValueError covers writes to an already-closed stream
                self._write_failures += 1
                self.errors.report(SinkWriteError(f"write {self.name}: {e}"))
                continue
            self._candles_written += 1

        logger.info(
            f"Candle sink {self.name} drained. "
            f"Total written: {self._candles_written} candles, {self._write_failures} failures"
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Sink counters"""
        return {
            "sink": self.name,
            "candles_written": self._candles_written,
            "write_failures": self._write_failures,
        }
