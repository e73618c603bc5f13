"""
Codecs

Text encodings used at the edges of the pipeline:
- price: fixed-point decimal text <-> integer minor units
- line: one raw input record -> Tick
"""

from dataflow.codec.price import parse_price, format_price
from dataflow.codec.line import parse_line, parse_timestamp

__all__ = ["parse_price", "format_price", "parse_line", "parse_timestamp"]
