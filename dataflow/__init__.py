"""
Dataflow Layer

Event I/O and processing stages of the candle pipeline. Contains:
- codec: price and input line parsing/formatting
- ingestion: tick reader with fan-out
- candle_aggregation: tick to candle windowing
- persistence: CSV candle sink
- adapters: in-process channels and the shared error slot
"""
