"""
Pipeline configuration loading.

Defaults live in config/pipeline.yaml; every value has an in-code fallback
so the pipeline runs without any config file present.
"""

import logging
import os
from dataclasses import dataclass, asdict, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import ConfigError, DEFAULT_ACTIVE_PHASE_END, DEFAULT_BASELINE_DATE

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "UNIFIED_DATA_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/pipeline.yaml")

# Nested YAML sections flattened onto PipelineConfig fields
_SECTION_KEYS = {
    "linking": {
        "spatial_radius_m": "link_spatial_radius_m",
        "temporal_window_days": "link_temporal_window_days",
    },
    "analysis": {
        "rolling_window_days": "rolling_window_days",
        "seasonality_threshold": "seasonality_threshold",
        "change_point_threshold": "change_point_threshold",
        "change_point_window": "change_point_window",
    },
}


@dataclass(frozen=True)
class PipelineConfig:
    """Tunable parameters for every pipeline stage."""
    baseline_date: str = DEFAULT_BASELINE_DATE
    active_phase_end: str = DEFAULT_ACTIVE_PHASE_END
    partition_threshold: int = 1000
    recent_days: int = 90
    quality_threshold: float = 0.8
    link_spatial_radius_m: float = 1000.0
    link_temporal_window_days: int = 7
    rolling_window_days: int = 7
    seasonality_threshold: float = 0.3
    change_point_threshold: float = 2.0
    change_point_window: int = 7

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PipelineConfig":
        """
        Build a validated config from a (possibly nested) mapping.

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        if not isinstance(raw, dict):
            raise ConfigError("Pipeline config must be a mapping")

        known = {f.name for f in fields(cls)}
        flat: Dict[str, Any] = {}
        for key, value in raw.items():
            if key in _SECTION_KEYS:
                if not isinstance(value, dict):
                    raise ConfigError(f"'{key}' section must be a mapping")
                for sub_key, sub_value in value.items():
                    target = _SECTION_KEYS[key].get(sub_key)
                    if target is None:
                        logger.warning(f"Ignoring unknown config key: {key}.{sub_key}")
                        continue
                    flat[target] = sub_value
            elif key in known:
                flat[key] = value
            else:
                logger.warning(f"Ignoring unknown config key: {key}")

        config = cls(**flat)
        config.validate()
        return config

    def validate(self) -> None:
        for name in ("baseline_date", "active_phase_end"):
            value = getattr(self, name)
            try:
                date.fromisoformat(str(value))
            except ValueError:
                raise ConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}")

        for name in ("partition_threshold", "recent_days", "link_temporal_window_days",
                     "rolling_window_days", "change_point_window"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

        for name in ("link_spatial_radius_m", "change_point_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{name} must be a positive number, got {value!r}")

        for name in ("quality_threshold", "seasonality_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 1:
                raise ConfigError(f"{name} must be between 0 and 1, got {value!r}")


def _candidate_paths(path: Optional[str]):
    if path is not None:
        yield Path(path)
        return
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        yield Path(env_path)
        return
    yield DEFAULT_CONFIG_PATH
    yield Path(__file__).resolve().parent.parent / DEFAULT_CONFIG_PATH


def load_pipeline_config(path: Optional[str] = None) -> PipelineConfig:
    """
    Load pipeline configuration from YAML.

    Lookup order: explicit path, $UNIFIED_DATA_CONFIG, ./config/pipeline.yaml,
    then config/pipeline.yaml at the repository root.

    Args:
        path: Explicit config file; it must exist when given

    Returns:
        PipelineConfig (defaults when no file is found)

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid
    """
    for candidate in _candidate_paths(path):
        if not candidate.exists():
            if path is not None:
                raise ConfigError(f"Config file not found: {candidate}")
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {candidate}: {e}")
        logger.debug(f"Loaded pipeline config from {candidate}")
        return PipelineConfig.from_dict(raw)

    return PipelineConfig()
