"""
Centralized configuration manager.
Loads the YAML config and provides typed access with defaults.

Tuning tables (smoothing factor, confidence threshold, interaction radii)
live in TrackingConfig so the algorithms never hard-code them.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import yaml

from bodytrack.core.types import (
    DEFAULT_BODY_PART_RADII, DEFAULT_MIN_CONFIDENCE, Target,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BODYTRACK_CONFIG"


def default_config_path() -> str:
    """Config file used when none is given.

    $BODYTRACK_CONFIG when set, else config/config.yaml under the working
    directory.
    """
    return os.environ.get(CONFIG_ENV_VAR) or os.path.join(os.getcwd(), "config", "config.yaml")


# Schema: sections and their expected field types
_CONFIG_SCHEMA = {
    "camera": {
        "source": (int, str),
        "width": int,
        "height": int,
        "fps": int,
    },
    "display": {
        "width": int,
        "height": int,
    },
    "tracking": {
        "smoothing_alpha": float,
        "min_confidence": float,
        "collision_history_size": int,
        "body_part_radii": dict,
        "targets": list,
    },
    "recording": {
        "max_duration_sec": float,
        "timer_interval_ms": int,
        "output_dir": str,
        "actions": list,
    },
    "performance": {
        "metrics_window": int,
        "log_interval_sec": float,
    },
    "logging": {
        "level": str,
        "levels": dict,
    },
}


@dataclass
class TrackingConfig:
    """Smoothing, confidence and collision tuning."""
    smoothing_alpha: float = 0.7
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    body_part_radii: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BODY_PART_RADII))
    collision_history_size: int = 50
    collision_fade_ms: int = 1000
    targets: List[Target] = field(default_factory=list)

    def __post_init__(self):
        if not 0.0 <= self.smoothing_alpha < 1.0:
            raise ValueError(f"smoothing_alpha must be in [0, 1), got {self.smoothing_alpha}")
        for part, radius in self.body_part_radii.items():
            if radius <= 0:
                raise ValueError(f"radius for {part} must be positive, got {radius}")

    @classmethod
    def from_dict(cls, d: dict) -> "TrackingConfig":
        """Create config from dictionary (YAML parsed)."""
        radii = dict(DEFAULT_BODY_PART_RADII)
        radii.update({k: float(v) for k, v in (d.get("body_part_radii") or {}).items()})
        return cls(
            smoothing_alpha=float(d.get("smoothing_alpha", 0.7)),
            min_confidence=float(d.get("min_confidence", DEFAULT_MIN_CONFIDENCE)),
            body_part_radii=radii,
            collision_history_size=int(d.get("collision_history_size", 50)),
            collision_fade_ms=int(d.get("collision_fade_ms", 1000)),
            targets=[Target.from_dict(t) for t in (d.get("targets") or [])],
        )


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None, overrides: dict = None):
        """Load configuration from a YAML file, then apply overrides."""
        config_path = config_path or default_config_path()

        try:
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        if overrides:
            self._data = _deep_merge(self._data, overrides)

        self._validate()
        return self

    def _validate(self):
        """Validate config fields against schema. Problems are logged, not raised."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name not in section:
                    continue
                value = section[field_name]
                # Allow int where float is expected
                if expected_type is float and isinstance(value, (int, float)):
                    continue
                if not isinstance(value, expected_type):
                    expected = (
                        "/".join(t.__name__ for t in expected_type)
                        if isinstance(expected_type, tuple) else expected_type.__name__
                    )
                    warnings.append(
                        f"{section_name}.{field_name}: expected {expected}, "
                        f"got {type(value).__name__} ({value!r})"
                    )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'tracking.smoothing_alpha'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {}) or {}

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def display(self) -> dict:
        return self.get_section("display")

    @property
    def pose(self) -> dict:
        return self.get_section("pose")

    @property
    def hands(self) -> dict:
        return self.get_section("hands")

    @property
    def recording(self) -> dict:
        return self.get_section("recording")

    @property
    def tracking(self) -> TrackingConfig:
        return TrackingConfig.from_dict(self.get_section("tracking"))

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
