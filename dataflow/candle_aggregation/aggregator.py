"""
Candle Aggregator

Buckets an ordered tick stream into fixed, session-bounded windows and
builds one OHLC candle per ticker per window.

Windows partition each session starting at the session start; the last
window is clipped to the session end. Windows without ticks produce no
candle, but the window grid keeps advancing so later window starts stay
aligned.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dataflow.adapters.channel import Channel
from dataflow.candle_aggregation.session import DEFAULT_SESSION, ONE_DAY, Session, midnight
from schemas.market_data import Candle, Tick

logger = logging.getLogger(__name__)


def span_label(span: timedelta) -> str:
    """Human label for a window span, e.g. '5min'"""
    return f"{span.total_seconds() / 60:.0f}min"


class WindowAggregator:
    """
    Window state machine for a single span.

    push() returns the candles closed by the incoming tick (usually none);
    drain() returns whatever is still open at end of input.

    Example usage:
        agg = WindowAggregator(timedelta(minutes=5))
        for tick in ticks:
            for candle in agg.push(tick):
                emit(candle)
        for candle in agg.drain():
            emit(candle)
    """

    def __init__(self, span: timedelta, session: Session = DEFAULT_SESSION):
        if span <= timedelta(0):
            raise ValueError(f"window span must be positive, got {span}")

        self.span = span
        self.session = session

        # Open candles of the current window only; cleared on every flush
        self._candles: Dict[str, Candle] = {}

        self._day: Optional[datetime] = None
        self._left: Optional[datetime] = None
        self._right: Optional[datetime] = None
        self._session_end: Optional[datetime] = None

        # Metrics
        self.ticks_accepted = 0
        self.ticks_discarded = 0
        self.candles_flushed = 0

    @property
    def window(self) -> Optional[tuple]:
        """Current window [left, right), or None before the first tick"""
        if self._day is None:
            return None
        return self._left, self._right

    def _open_day(self, day: datetime) -> None:
        """Position the window on the first window of day's session"""
        self._day = day
        self._left, self._session_end = self.session.bounds(day)
        self._right = min(self._left + self.span, self._session_end)

    def _advance(self, ts: datetime) -> None:
        """Move the window forward until ts < right, skipping idle windows and days"""
        while ts >= self._right:
            if self._right >= self._session_end:
                # Sessions of days before the eve of ts have ended by ts
                self._open_day(max(self._day + ONE_DAY, midnight(ts) - ONE_DAY))
                continue

            skipped = (ts - self._left) // self.span
            self._left = min(self._left + skipped * self.span, self._session_end)
            self._right = min(self._left + self.span, self._session_end)

    def _flush(self) -> List[Candle]:
        if not self._candles:
            return []
        closed = list(self._candles.values())
        self._candles.clear()
        self.candles_flushed += len(closed)
        logger.debug(
            f"[{span_label(self.span)}] Closed window {self._left.isoformat()}: "
            f"{len(closed)} candles"
        )
        return closed

    def push(self, tick: Tick) -> List[Candle]:
        """
        Feed one tick; ticks must arrive in non-decreasing timestamp order.

        Returns:
            Candles completed because this tick crossed a window boundary
        """
        ts = tick.timestamp
        if self._day is None:
            self._open_day(midnight(ts))

        closed: List[Candle] = []
        if ts >= self._right:
            closed = self._flush()
            self._advance(ts)

        if ts < self._left:
            # Before the session start
            self.ticks_discarded += 1
            return closed

        candle = self._candles.get(tick.ticker)
        if candle is None:
            self._candles[tick.ticker] = Candle.open_with(tick, self._left)
        else:
            candle.add_tick(tick)
        self.ticks_accepted += 1

        return closed

    def drain(self) -> List[Candle]:
        """Close the last active window at end of input"""
        return self._flush()


class CandleAggregator:
    """
    Worker connecting a WindowAggregator between two channels.

    Receives ticks from its inbox, sends closed candles to its outbox and
    closes the outbox once the inbox is exhausted.
    """

    def __init__(
        self,
        span: timedelta,
        inbox: Channel[Tick],
        outbox: Channel[Candle],
        session: Session = DEFAULT_SESSION,
    ):
        self.window = WindowAggregator(span, session)
        self.inbox = inbox
        self.outbox = outbox
        self.label = span_label(span)

    async def run(self) -> None:
        """Consume the inbox until it is closed"""
        logger.info(f"Starting candle aggregator for {self.label} windows")

        async for tick in self.inbox:
            for candle in self.window.push(tick):
                await self.outbox.send(candle)

        for candle in self.window.drain():
            await self.outbox.send(candle)

        await self.outbox.close()

        logger.info(
            f"Candle aggregator {self.label} finished: "
            f"{self.window.ticks_accepted} ticks aggregated, "
            f"{self.window.ticks_discarded} discarded, "
            f"{self.window.candles_flushed} candles"
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Aggregator counters"""
        return {
            "span": self.label,
            "ticks_accepted": self.window.ticks_accepted,
            "ticks_discarded": self.window.ticks_discarded,
            "candles_flushed": self.window.candles_flushed,
        }
