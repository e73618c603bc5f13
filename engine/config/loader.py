"""
Config Loader

Loads pipeline configuration from YAML and validates it with pydantic.
Every field has a default, so a run needs no config file at all.
"""

import yaml
from datetime import timedelta
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, PositiveInt, field_validator
import logging

from dataflow.candle_aggregation.session import Session

logger = logging.getLogger(__name__)

DEFAULT_SPANS = [5, 30, 240]


class SessionConfig(BaseModel):
    """Daily trading session, in minutes from midnight UTC"""
    start_minutes: int = Field(default=420, ge=0, lt=1440)
    duration_minutes: int = Field(default=1020, gt=0, le=1440)

    def to_session(self) -> Session:
        return Session(
            start=timedelta(minutes=self.start_minutes),
            duration=timedelta(minutes=self.duration_minutes),
        )


class PipelineConfig(BaseModel):
    """Complete configuration for one pipeline run"""
    spans_minutes: List[PositiveInt] = Field(default_factory=lambda: list(DEFAULT_SPANS))
    output_dir: Path = Path(".")
    output_template: str = "candles_{minutes}min.csv"
    timeout_ms: PositiveInt = 5000
    session: SessionConfig = Field(default_factory=SessionConfig)

    @field_validator("spans_minutes")
    @classmethod
    def _unique_spans(cls, spans: List[int]) -> List[int]:
        if not spans:
            raise ValueError("at least one window span is required")
        if len(set(spans)) != len(spans):
            raise ValueError(f"duplicate window spans: {spans}")
        return spans

    @field_validator("output_template")
    @classmethod
    def _template_has_minutes(cls, template: str) -> str:
        if "{minutes}" not in template:
            raise ValueError("output_template must contain '{minutes}'")
        return template

    def window_spans(self) -> List[timedelta]:
        """Configured spans as timedeltas, in configured order"""
        return [timedelta(minutes=m) for m in self.spans_minutes]

    def output_path(self, span: timedelta) -> Path:
        """Output file for a window span, e.g. ./candles_5min.csv"""
        minutes = f"{span.total_seconds() / 60:.0f}"
        return self.output_dir / self.output_template.format(minutes=minutes)

    @property
    def timeout(self) -> float:
        """Run-wide deadline in seconds"""
        return self.timeout_ms / 1000


class ConfigLoader:
    """
    Loads a PipelineConfig from an optional YAML file.

    Example usage:
        config = ConfigLoader(Path("config/pipeline.yaml")).load()
        config = ConfigLoader().load()  # defaults only
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: YAML file, or None to use defaults
        """
        self.config_path = config_path
        logger.debug(f"Initialized ConfigLoader with config_path: {config_path}")

    def load(self, **overrides) -> PipelineConfig:
        """
        Load, merge overrides and validate.

        Args:
            overrides: Field values taking precedence over the file (None is ignored)

        Returns:
            Validated PipelineConfig

        Raises:
            ValueError: If the file is missing, unreadable or invalid
        """
        raw = {}
        if self.config_path is not None:
            raw = self._read_yaml(self.config_path)

        raw.update({k: v for k, v in overrides.items() if v is not None})

        try:
            config = PipelineConfig(**raw)
        except ValueError as e:
            source = self.config_path or "defaults"
            raise ValueError(f"Invalid pipeline config ({source}): {e}") from e

        logger.info(
            f"Loaded pipeline config: spans={config.spans_minutes} min, "
            f"output_dir={config.output_dir}, timeout={config.timeout_ms} ms"
        )
        return config

    def _read_yaml(self, path: Path) -> dict:
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise ValueError(f"Failed to load {path}: {e}") from e

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return raw
