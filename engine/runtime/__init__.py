"""
Runtime Module

Pipeline coordinator and command-line entry point.
"""

from .coordinator import PipelineCoordinator

__all__ = [
    "PipelineCoordinator",
]
