"""
Config Module

YAML pipeline configuration loading and validation.
"""

from .loader import ConfigLoader, PipelineConfig, SessionConfig

__all__ = [
    "ConfigLoader",
    "PipelineConfig",
    "SessionConfig",
]
