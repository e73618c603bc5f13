"""
Ingestion

Reads raw tick records and fans them out to every aggregator.
"""

from dataflow.ingestion.reader import TickReader

__all__ = ["TickReader"]
