from datetime import datetime, timezone

from schemas.market_data import Tick


def ts(hour: int, minute: int, second: int = 0, micro: int = 0, day: int = 30) -> datetime:
    """UTC instant on 2019-01-<day>"""
    return datetime(2019, 1, day, hour, minute, second, micro, tzinfo=timezone.utc)


def make_tick(ticker: str, price: int, when: datetime, count: int = 1) -> Tick:
    return Tick(ticker=ticker, timestamp=when, price=price, count=count)


SAMPLE_LINES = [
    "SBER,213.8,100,2019-01-30 06:59:45.000249\n",
    "AAPL,162.88,2,2019-01-30 07:00:09.838841\n",
    "SBER,213.82,10,2019-01-30 07:01:00\n",
    "AAPL,163.2,1,2019-01-30 07:07:33.000001\n",
]
