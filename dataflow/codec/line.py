"""
Line Parser

Turns one raw record `TICKER,PRICE,COUNT,TIMESTAMP[,...]` into a Tick.
Extra trailing fields are ignored. No partial recovery is attempted.
"""

import re
from datetime import datetime, timezone

from dataflow.codec.price import parse_price
from dataflow.errors import CountParseError, InvalidLineFormat, TimestampParseError
from schemas.market_data import Tick

MIN_FIELDS = 4

_COUNT = re.compile(r"[+-]?[0-9]+")
_TIMESTAMP = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}(\.[0-9]{1,6})?")


def parse_timestamp(text: str) -> datetime:
    """
    Parse `YYYY-MM-DD HH:MM:SS[.ffffff]` as a UTC instant.

    Raises:
        TimestampParseError: On any other shape or an impossible date
    """
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise TimestampParseError(f"invalid timestamp {text!r}")

    layout = "%Y-%m-%d %H:%M:%S.%f" if match.group(1) else "%Y-%m-%d %H:%M:%S"
    try:
        ts = datetime.strptime(text, layout)
    except ValueError as e:
        raise TimestampParseError(f"invalid timestamp {text!r}: {e}") from e
    return ts.replace(tzinfo=timezone.utc)


def parse_line(text: str) -> Tick:
    """
    Parse one input record.

    Raises:
        InvalidLineFormat: Fewer than four fields
        PriceParseError: Malformed price
        CountParseError: Malformed trade count
        TimestampParseError: Malformed timestamp
    """
    parts = text.rstrip("\r\n").split(",")
    if len(parts) < MIN_FIELDS:
        raise InvalidLineFormat(f"invalid line format: expected {MIN_FIELDS} fields, got {len(parts)}")

    ticker, price_text, count_text, ts_text = parts[:MIN_FIELDS]

    price = parse_price(price_text)

    if not _COUNT.fullmatch(count_text):
        raise CountParseError(f"invalid count {count_text!r}")
    count = int(count_text)

    timestamp = parse_timestamp(ts_text)

    return Tick(ticker=ticker, timestamp=timestamp, price=price, count=count)
