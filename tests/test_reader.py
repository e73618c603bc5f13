"""Tests for the tick reader and its fan-out."""

import asyncio
import io

import pytest

from dataflow.adapters.channel import Channel, ErrorSlot
from dataflow.errors import InvalidLineFormat, PriceParseError, SourceReadError
from dataflow.ingestion.reader import TickReader
from tests.fixtures import SAMPLE_LINES


async def collect(ch: Channel) -> list:
    return [item async for item in ch]


async def run_reader(source, consumers: int = 2):
    errors = ErrorSlot()
    outputs = [Channel(f"out-{i}") for i in range(consumers)]
    reader = TickReader(source, errors, outputs)

    collectors = [asyncio.create_task(collect(ch)) for ch in outputs]
    await reader.run()
    received = await asyncio.gather(*collectors)
    return reader, errors, received


class TestTickReader:
    """Parsing, broadcast and end-of-stream handling."""

    @pytest.mark.asyncio
    async def test_every_consumer_sees_every_tick_in_order(self):
        reader, errors, received = await run_reader(SAMPLE_LINES, consumers=3)

        tickers = [[t.ticker for t in ticks] for ticks in received]
        assert tickers == [["SBER", "AAPL", "SBER", "AAPL"]] * 3
        assert errors.error is None
        assert reader.get_metrics() == {"lines_read": 4, "ticks_forwarded": 4, "lines_rejected": 0}

    @pytest.mark.asyncio
    async def test_invalid_line_reported_and_not_forwarded(self):
        lines = [SAMPLE_LINES[0], "garbage\n", SAMPLE_LINES[1], "AAPL,1.x,1,2019-01-30 07:00:00\n"]
        reader, errors, received = await run_reader(lines)

        assert isinstance(errors.error, InvalidLineFormat)
        assert errors.error.line_no == 2
        assert errors.dropped == 1
        # Processing continued past the bad lines
        assert [[t.ticker for t in ticks] for ticks in received] == [["SBER", "AAPL"]] * 2
        assert reader.lines_rejected == 2

    @pytest.mark.asyncio
    async def test_price_error_carries_line_number(self):
        _, errors, _ = await run_reader(["AAPL,1.x,1,2019-01-30 07:00:00\n"])

        assert isinstance(errors.error, PriceParseError)
        assert "line 1" in str(errors.error)

    @pytest.mark.asyncio
    async def test_empty_source_closes_outputs(self):
        _, errors, received = await run_reader([])

        assert received == [[], []]
        assert errors.error is None

    @pytest.mark.asyncio
    async def test_read_failure_reported(self):
        def broken_source():
            yield SAMPLE_LINES[1]
            raise OSError("device not ready")

        _, errors, received = await run_reader(broken_source())

        assert isinstance(errors.error, SourceReadError)
        assert "device not ready" in str(errors.error)
        assert [len(ticks) for ticks in received] == [1, 1]

    @pytest.mark.asyncio
    async def test_text_stream_source(self):
        _, _, received = await run_reader(io.StringIO("".join(SAMPLE_LINES)), consumers=1)
        assert len(received[0]) == 4
