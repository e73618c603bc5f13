"""End-to-end tests for the pipeline coordinator."""

import asyncio
import io
import time
from pathlib import Path

import pytest

from dataflow.errors import DeadlineExceeded, InvalidLineFormat, SinkWriteError
from engine.config.loader import PipelineConfig
from engine.runtime.coordinator import PipelineCoordinator
from tests.fixtures import SAMPLE_LINES


def read_lines(path: Path) -> list:
    return sorted(path.read_text().splitlines())


class BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError("no space left on device")


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(output_dir=tmp_path)


class TestPipelineCoordinator:
    """One reader, N aggregator/sink pipelines."""

    @pytest.mark.asyncio
    async def test_writes_one_file_per_span(self, config: PipelineConfig, tmp_path: Path):
        coordinator = PipelineCoordinator(config)
        await coordinator.run(SAMPLE_LINES)

        assert read_lines(tmp_path / "candles_5min.csv") == [
            "AAPL,2019-01-30T07:00:00Z,162.88,162.88,162.88,162.88",
            "AAPL,2019-01-30T07:05:00Z,163.2,163.2,163.2,163.2",
            "SBER,2019-01-30T07:00:00Z,213.82,213.82,213.82,213.82",
        ]
        for minutes in (30, 240):
            assert read_lines(tmp_path / f"candles_{minutes}min.csv") == [
                "AAPL,2019-01-30T07:00:00Z,162.88,163.2,162.88,163.2",
                "SBER,2019-01-30T07:00:00Z,213.82,213.82,213.82,213.82",
            ]

    @pytest.mark.asyncio
    async def test_metrics(self, config: PipelineConfig):
        coordinator = PipelineCoordinator(config)
        await coordinator.run(SAMPLE_LINES)

        metrics = coordinator.get_metrics()
        assert metrics["reader"]["ticks_forwarded"] == 4
        assert set(metrics["pipelines"]) == {"5min", "30min", "240min"}
        assert metrics["pipelines"]["5min"]["ticks_discarded"] == 1
        assert metrics["pipelines"]["5min"]["candles_written"] == 3
        assert metrics["pipelines"]["30min"]["candles_written"] == 2

    @pytest.mark.asyncio
    async def test_output_independent_of_chunking(self, tmp_path: Path):
        text = "".join(SAMPLE_LINES)
        as_stream = tmp_path / "stream"
        as_list = tmp_path / "list"
        as_stream.mkdir()
        as_list.mkdir()

        await PipelineCoordinator(PipelineConfig(output_dir=as_stream)).run(io.StringIO(text))
        await PipelineCoordinator(PipelineConfig(output_dir=as_list)).run(text.splitlines())

        for name in ("candles_5min.csv", "candles_30min.csv", "candles_240min.csv"):
            assert read_lines(as_stream / name) == read_lines(as_list / name)

    @pytest.mark.asyncio
    async def test_empty_input(self, config: PipelineConfig, tmp_path: Path):
        await PipelineCoordinator(config).run([])

        assert (tmp_path / "candles_5min.csv").read_text() == ""

    @pytest.mark.asyncio
    async def test_parse_error_aborts_run(self, config: PipelineConfig):
        lines = SAMPLE_LINES[:2] + ["not,a,tick\n"] + SAMPLE_LINES[2:]

        with pytest.raises(InvalidLineFormat) as exc_info:
            await PipelineCoordinator(config).run(lines)
        assert exc_info.value.line_no == 3

    @pytest.mark.asyncio
    async def test_first_parse_error_returns_without_reading_to_the_end(self, tmp_path: Path):
        def slow_bad_source():
            for _ in range(100):
                time.sleep(0.01)
                yield "bad\n"

        config = PipelineConfig(output_dir=tmp_path, timeout_ms=50)
        started = time.monotonic()

        with pytest.raises(InvalidLineFormat) as exc_info:
            await PipelineCoordinator(config).run(slow_bad_source())

        assert time.monotonic() - started < 0.5
        assert exc_info.value.line_no == 1

    @pytest.mark.asyncio
    async def test_write_error_aborts_run(self, config: PipelineConfig):
        coordinator = PipelineCoordinator(config, open_sink=lambda path: BrokenStream())

        with pytest.raises(SinkWriteError, match="no space left on device"):
            await coordinator.run(SAMPLE_LINES)

    @pytest.mark.asyncio
    async def test_open_error_closes_already_opened_sinks(self, config: PipelineConfig):
        opened = []

        def opener(path: Path):
            if opened:
                raise PermissionError(f"cannot open {path}")
            stream = io.StringIO()
            opened.append(stream)
            return stream

        with pytest.raises(SinkWriteError, match="cannot open"):
            await PipelineCoordinator(config, open_sink=opener).run(SAMPLE_LINES)
        assert opened[0].closed

    @pytest.mark.asyncio
    async def test_deadline_exceeded_cancels_workers(self, tmp_path: Path):
        def slow_source():
            for i in range(50):
                time.sleep(0.01)
                yield f"AAPL,100,1,2019-01-30 07:{i:02d}:00\n"

        config = PipelineConfig(output_dir=tmp_path, timeout_ms=5)

        with pytest.raises(DeadlineExceeded):
            await PipelineCoordinator(config).run(slow_source())

        # No worker is left running after run() returns
        assert asyncio.all_tasks() == {asyncio.current_task()}

    @pytest.mark.asyncio
    async def test_custom_spans_and_template(self, tmp_path: Path):
        config = PipelineConfig(
            output_dir=tmp_path,
            spans_minutes=[1],
            output_template="ohlc_{minutes}.txt",
        )
        await PipelineCoordinator(config).run(SAMPLE_LINES)

        assert read_lines(tmp_path / "ohlc_1.txt") == [
            "AAPL,2019-01-30T07:00:00Z,162.88,162.88,162.88,162.88",
            "AAPL,2019-01-30T07:07:00Z,163.2,163.2,163.2,163.2",
            "SBER,2019-01-30T07:01:00Z,213.82,213.82,213.82,213.82",
        ]
