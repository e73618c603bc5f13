"""
Trading Session Geometry

Each UTC calendar day owns one session [day + start, day + start + duration).
Ticks outside a session never reach a candle.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

ONE_DAY = timedelta(days=1)

SESSION_START = timedelta(minutes=420)  # 07:00 UTC
SESSION_DURATION = timedelta(minutes=1020)  # until 24:00 UTC


def midnight(ts: datetime) -> datetime:
    """Start of the calendar day containing ts"""
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class Session:
    """Daily trading session, as offsets from midnight"""
    start: timedelta = SESSION_START
    duration: timedelta = SESSION_DURATION

    def __post_init__(self):
        if not timedelta(0) <= self.start < ONE_DAY:
            raise ValueError(f"session start must be within one day, got {self.start}")
        if not timedelta(0) < self.duration <= ONE_DAY:
            raise ValueError(f"session duration must be in (0, 24h], got {self.duration}")

    def bounds(self, day: datetime) -> Tuple[datetime, datetime]:
        """Session [start, end) for the given midnight"""
        start = day + self.start
        return start, start + self.duration


DEFAULT_SESSION = Session()
