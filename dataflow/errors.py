"""
Pipeline Errors

Every failure that can end a run derives from PipelineError.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all errors that abort a pipeline run"""


class LineParseError(PipelineError, ValueError):
    """A raw input record could not be turned into a tick"""

    def __init__(self, message: str, line_no: Optional[int] = None):
        self.message = message
        self.line_no = line_no
        super().__init__(self._render())

    def _render(self) -> str:
        if self.line_no is None:
            return f"parse: {self.message}"
        return f"parse: line {self.line_no}: {self.message}"

    def at_line(self, line_no: int) -> "LineParseError":
        """Attach the 1-based input line number"""
        self.line_no = line_no
        self.args = (self._render(),)
        return self


class InvalidLineFormat(LineParseError):
    """Record has fewer than four comma-separated fields"""


class PriceParseError(LineParseError):
    """Price field is not fixed-point decimal text"""


class CountParseError(LineParseError):
    """Count field is not a base-10 integer"""


class TimestampParseError(LineParseError):
    """Timestamp field does not match YYYY-MM-DD HH:MM:SS[.ffffff]"""


class SourceReadError(PipelineError):
    """Reading the input stream failed"""


class SinkWriteError(PipelineError):
    """Writing a candle to an output sink failed"""


class DeadlineExceeded(PipelineError, TimeoutError):
    """The run-wide deadline expired before every pipeline finished"""
