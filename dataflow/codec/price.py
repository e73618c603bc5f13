"""
Price Codec

Prices travel as integers in minor units (scale 100).

Note: format_price() does not zero-pad the cents, so 21305 renders as
"213.5", which parses back as 21350. Output files depend on this exact text.
"""

import re

from dataflow.errors import PriceParseError

PRICE_SCALE = 100

_DIGITS = re.compile(r"[0-9]+")


def _parse_digits(text: str, full_text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise PriceParseError(f"invalid price {full_text!r}")
    return int(text)


def parse_price(text: str) -> int:
    """
    Parse fixed-point decimal text into minor units.

    A single fractional digit is read as tens of cents ("213.8" -> 21380).
    A leading sign applies to the whole amount ("-0.5" -> -50).

    Raises:
        PriceParseError: If either part is not a base-10 integer
    """
    sign, body = 1, text
    if body[:1] in ("+", "-"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    whole, sep, cents = body.partition(".")
    price = _parse_digits(whole, text) * PRICE_SCALE
    if sep:
        if len(cents) == 1:
            cents += "0"
        price += _parse_digits(cents, text)
    return sign * price


def format_price(price: int) -> str:
    """Render minor units as decimal text ("213.82", "213.8", "213")"""
    if price < 0:
        return "-" + format_price(-price)

    whole, rem = divmod(price, PRICE_SCALE)
    if rem == 0:
        return str(whole)
    if rem % 10 == 0:
        rem //= 10
    return f"{whole}.{rem}"
