"""
Candle Pipeline - Main Entry Point

Reads a tick file once and writes one candle file per configured window span.

Usage:
    candles --file trades.csv [--output-dir DIR] [--timeout MS] [--config YAML]

Environment Variables:
    LOG_LEVEL: Logging level (default: "INFO")
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dataflow.errors import PipelineError, SourceReadError
from engine.config.loader import ConfigLoader, PipelineConfig
from engine.runtime.coordinator import PipelineCoordinator

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="candles",
        description="Aggregate trade ticks into OHLC candles over several window spans",
    )
    parser.add_argument("--file", required=True, type=Path, help="input file path")
    parser.add_argument("--output-dir", type=Path, default=None, help="output directory (default: .)")
    parser.add_argument("--timeout", type=int, default=None, help="overall timeout in milliseconds (default: 5000)")
    parser.add_argument("--config", type=Path, default=None, help="optional YAML pipeline config")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=os.getenv("LOG_LEVEL", "INFO"),
        help=f"logging level, one of {', '.join(LOG_LEVELS)} (default: INFO)",
    )
    return parser


async def pipeline(input_path: Path, config: PipelineConfig) -> PipelineCoordinator:
    """Run the coordinator over one input file"""
    coordinator = PipelineCoordinator(config)

    try:
        source = open(input_path, encoding="utf-8", newline="")
    except OSError as e:
        raise SourceReadError(f"open {input_path}: {e}") from e

    with source:
        await coordinator.run(source)

    return coordinator


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Process exit status (0 on success, 1 on any pipeline error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} (from --log-level or LOG_LEVEL)")

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = ConfigLoader(args.config).load(
            output_dir=args.output_dir,
            timeout_ms=args.timeout,
        )
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logger.info(f"Input: {args.file}")

    try:
        coordinator = asyncio.run(pipeline(args.file, config))
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1

    metrics = coordinator.get_metrics()
    logger.info(f"Metrics: {metrics}")
    return 0


def run() -> None:
    """Console script wrapper"""
    sys.exit(main())


if __name__ == "__main__":
    run()
