"""
Tick Reader

Parses the input stream line by line and broadcasts every tick to each
consumer channel in registration order. A send to one consumer completes
before the next consumer is offered the tick, so the reader moves at the
pace of its slowest consumer.

Lines that fail to parse are reported on the error slot and are not
forwarded. All consumer channels are closed at end of input.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Sequence

from dataflow.adapters.channel import Channel, ErrorSlot
from dataflow.codec.line import parse_line
from dataflow.errors import LineParseError, SourceReadError
from schemas.market_data import Tick

logger = logging.getLogger(__name__)


class TickReader:
    """
    Single producer feeding N aggregator inboxes.

    Example usage:
        errors = ErrorSlot()
        reader = TickReader(open("trades.csv"), errors, [inbox_5m, inbox_30m])
        await reader.run()
    """

    def __init__(self, source: Iterable[str], errors: ErrorSlot, outputs: Sequence[Channel[Tick]]):
        """
        Args:
            source: Iterable of raw text lines (an open text file, a list, ...)
            errors: Run-wide error slot
            outputs: Consumer channels, served in this order
        """
        self.source = source
        self.errors = errors
        self.outputs = list(outputs)

        # Metrics
        self.lines_read = 0
        self.ticks_forwarded = 0
        self.lines_rejected = 0

    async def run(self) -> None:
        """Read the whole source, then close every output"""
        logger.info(f"Starting tick reader with {len(self.outputs)} consumers")

        try:
            for text in self.source:
                self.lines_read += 1
                try:
                    tick = parse_line(text)
                except LineParseError as e:
                    self.lines_rejected += 1
                    self.errors.report(e.at_line(self.lines_read))
                    # Let the coordinator observe the error between rejected lines
                    await asyncio.sleep(0)
                    continue

                await self._broadcast(tick)
        except (OSError, UnicodeDecodeError) as e:
            self.errors.report(SourceReadError(f"read: {e}"))

        for out in self.outputs:
            await out.close()

        logger.info(
            f"Tick reader finished: {self.lines_read} lines, "
            f"{self.ticks_forwarded} ticks forwarded, {self.lines_rejected} rejected"
        )

    async def _broadcast(self, tick: Tick) -> None:
        for out in self.outputs:
            await out.send(tick)
        self.ticks_forwarded += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Reader counters"""
        return {
            "lines_read": self.lines_read,
            "ticks_forwarded": self.ticks_forwarded,
            "lines_rejected": self.lines_rejected,
        }
