"""
Pipeline Coordinator

Wires one TickReader to N (CandleAggregator -> CsvCandleSink) pipelines,
one per configured window span, and waits for the first of:
- an error reported by any worker (first error wins)
- the run-wide deadline
- every worker finishing

Whatever the outcome, all worker tasks are cancelled and awaited before
run() returns, and every output stream it opened is closed.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TextIO

from dataflow.adapters.channel import Channel, ErrorSlot
from dataflow.candle_aggregation.aggregator import CandleAggregator, span_label
from dataflow.errors import DeadlineExceeded, SinkWriteError
from dataflow.ingestion.reader import TickReader
from dataflow.persistence.sink import CsvCandleSink
from engine.config.loader import PipelineConfig
from schemas.market_data import Candle, Tick

logger = logging.getLogger(__name__)

SinkOpener = Callable[[Path], TextIO]


def open_output_file(path: Path) -> TextIO:
    """Create or truncate an output file"""
    return open(path, "w", encoding="utf-8", newline="")


@dataclass
class SpanPipeline:
    """Aggregator and sink serving one window span"""
    label: str
    path: Path
    aggregator: CandleAggregator
    sink: CsvCandleSink


class PipelineCoordinator:
    """
    Runs the whole fan-out pipeline once.

    Example usage:
        config = ConfigLoader(Path("config/pipeline.yaml")).load()
        coordinator = PipelineCoordinator(config)

        with open("trades.csv") as source:
            await coordinator.run(source)

        print(coordinator.get_metrics())
    """

    def __init__(self, config: PipelineConfig, open_sink: Optional[SinkOpener] = None):
        """
        Args:
            config: Validated pipeline configuration
            open_sink: Opens the output stream for a path (defaults to a file)
        """
        self.config = config
        self.open_sink = open_sink or open_output_file

        self.reader: Optional[TickReader] = None
        self.pipelines: List[SpanPipeline] = []

    async def run(self, source: Iterable[str]) -> None:
        """
        Run every pipeline over source.

        Raises:
            PipelineError: The first error reported by any worker
            DeadlineExceeded: If the run did not finish within the timeout
        """
        errors = ErrorSlot()
        streams: List[TextIO] = []
        tasks: List[asyncio.Task] = []
        self.pipelines = []

        try:
            inboxes = []
            for span in self.config.window_spans():
                label = span_label(span)
                path = self.config.output_path(span)

                try:
                    stream = self.open_sink(path)
                except OSError as e:
                    raise SinkWriteError(f"open {path}: {e}") from e
                streams.append(stream)

                ticks: Channel[Tick] = Channel(f"ticks-{label}")
                candles: Channel[Candle] = Channel(f"candles-{label}")
                inboxes.append(ticks)

                self.pipelines.append(SpanPipeline(
                    label=label,
                    path=path,
                    aggregator=CandleAggregator(span, ticks, candles, self.config.session.to_session()),
                    sink=CsvCandleSink(label, stream, candles, errors),
                ))

            self.reader = TickReader(source, errors, inboxes)

            logger.info(
                f"Starting {len(self.pipelines)} pipelines: "
                f"{[p.label for p in self.pipelines]}, timeout {self.config.timeout_ms} ms"
            )

            tasks.append(asyncio.create_task(self.reader.run(), name="reader"))
            for p in self.pipelines:
                tasks.append(asyncio.create_task(p.aggregator.run(), name=f"aggregator-{p.label}"))
                tasks.append(asyncio.create_task(p.sink.run(), name=f"sink-{p.label}"))

            await self._wait(tasks, errors)
            logger.info("All pipelines completed")

        finally:
            await self._cancel(tasks)
            for stream in streams:
                stream.close()

    async def _wait(self, tasks: List[asyncio.Task], errors: ErrorSlot) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.timeout

        failure = asyncio.create_task(errors.wait(), name="error-slot")
        pending = set(tasks)
        pending.add(failure)

        try:
            while pending != {failure}:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.error(f"Deadline of {self.config.timeout_ms} ms exceeded")
                    raise DeadlineExceeded(f"deadline of {self.config.timeout_ms} ms exceeded")

                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )

                if errors.error is not None:
                    raise errors.error

                for task in done:
                    if not task.cancelled() and task.exception() is not None:
                        # Unexpected crash in a worker
                        raise task.exception()
        finally:
            failure.cancel()
            await asyncio.gather(failure, return_exceptions=True)

    async def _cancel(self, tasks: List[asyncio.Task]) -> None:
        """Stop every still-running worker and wait for it to exit"""
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug(f"Cancelling {len(pending)} workers: {[t.get_name() for t in pending]}")
        await asyncio.gather(*tasks, return_exceptions=True)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get counters of the last run.

        Returns:
            Dictionary with reader and per-span statistics
        """
        return {
            "reader": self.reader.get_metrics() if self.reader else {},
            "pipelines": {
                p.label: {
                    "path": str(p.path),
                    **p.aggregator.get_metrics(),
                    **p.sink.get_metrics(),
                }
                for p in self.pipelines
            },
        }
