"""Environment-driven settings for detection and resolution.

Environment Variables:
    FACTRECON_AUTO_RESOLVE: "1"/"true"/"yes" or "0"/"false"/"no" (default: enabled)
    FACTRECON_AUTO_RESOLVE_MAX_SEVERITY: low | medium | high (default: low)
    FACTRECON_SOURCE_PRIORITIES_PATH: YAML mapping of source name -> priority, merged
        over DEFAULT_SOURCE_PRIORITIES

Settings are read on demand by load_settings(), never at import time. Invalid values
raise ConfigError.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from factrecon.models.conflict import ConflictSeverity

logger = logging.getLogger(__name__)

AUTO_RESOLVE_ENV = "FACTRECON_AUTO_RESOLVE"
AUTO_RESOLVE_MAX_SEVERITY_ENV = "FACTRECON_AUTO_RESOLVE_MAX_SEVERITY"
SOURCE_PRIORITIES_PATH_ENV = "FACTRECON_SOURCE_PRIORITIES_PATH"

DEFAULT_SOURCE_PRIORITIES: dict[str, int] = {
    "Federal Register": 10,
    "White House": 9,
    "Department of Justice": 8,
    "National Institutes of Health": 7,
    "National Science Foundation": 7,
    "Council on Governmental Relations (COGR)": 6,
    "American Council on Education (ACE)": 5,
    "Yale Analysis": 4,
}


class ConfigError(Exception):
    """Raised when a configuration value is missing or invalid."""

    pass


class DetectionThresholds(BaseModel):
    """Tunable thresholds for the category conflict predicates.

    The similarity values are heuristics; they are exposed here so they can be
    recalibrated without touching the predicates.
    """

    date_tolerance_hours: float = Field(default=24.0, ge=0)
    requirement_similarity: float = Field(default=0.70, ge=0, le=1)
    impact_similarity: float = Field(default=0.60, ge=0, le=1)
    guidance_similarity_min: float = Field(default=0.50, ge=0, le=1)
    guidance_similarity_max: float = Field(default=0.80, ge=0, le=1)

    @model_validator(mode="after")
    def check_guidance_band(self) -> DetectionThresholds:
        if self.guidance_similarity_min >= self.guidance_similarity_max:
            raise ValueError("guidance_similarity_min must be below guidance_similarity_max")
        return self

    model_config = {"frozen": True, "extra": "forbid"}


class ResolutionThresholds(BaseModel):
    """Margins a resolution strategy must exceed before it decides."""

    recency_window_hours: float = Field(default=24.0, ge=0)
    confidence_margin: float = Field(default=0.10, ge=0, le=1)

    model_config = {"frozen": True, "extra": "forbid"}


class AutoResolutionPolicy(BaseModel):
    """Severity gate for automatic resolution of newly detected conflicts.

    A conflict is auto-resolved only when the policy is enabled and its severity is
    at or below max_severity.
    """

    enabled: bool = True
    max_severity: ConflictSeverity = ConflictSeverity.LOW

    def allows(self, severity: str) -> bool:
        if not self.enabled:
            return False
        return ConflictSeverity(severity).rank <= self.max_severity.rank

    model_config = {"frozen": True, "extra": "forbid"}


class ReconciliationSettings(BaseModel):
    """All settings consumed by the detector and the resolution engine."""

    auto_resolution: AutoResolutionPolicy = Field(default_factory=AutoResolutionPolicy)
    thresholds: DetectionThresholds = Field(default_factory=DetectionThresholds)
    resolution_thresholds: ResolutionThresholds = Field(default_factory=ResolutionThresholds)
    source_priorities: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_SOURCE_PRIORITIES)
    )

    model_config = {"frozen": True, "extra": "forbid"}


def _parse_bool(key: str, raw: str | None, default: bool) -> bool:
    val = (raw or "").strip().lower()
    if val == "":
        return default
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    raise ConfigError(f"{key} must be a boolean (1/0, true/false, yes/no), got {raw!r}")


def load_source_priorities(path: str | Path) -> dict[str, int]:
    """Load a YAML mapping of source name -> integer priority.

    Raises:
        ConfigError: If the file is missing, not valid YAML, or not a name -> int mapping.
    """
    priorities_path = Path(path)
    try:
        content = priorities_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read source priorities file {path}: {e}") from e

    try:
        data: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in source priorities file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Source priorities must be a mapping, got {type(data).__name__} in {path}"
        )

    priorities: dict[str, int] = {}
    for name, value in data.items():
        if not isinstance(name, str) or isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Invalid source priority entry {name!r}: {value!r} in {path}")
        priorities[name] = value
    return priorities


def load_settings(env: Mapping[str, str] | None = None) -> ReconciliationSettings:
    """Build ReconciliationSettings from the environment.

    Args:
        env: Mapping to read instead of os.environ (for tests).

    Raises:
        ConfigError: If any value is invalid.
    """
    source = os.environ if env is None else env

    enabled = _parse_bool(AUTO_RESOLVE_ENV, source.get(AUTO_RESOLVE_ENV), True)

    raw_severity = (source.get(AUTO_RESOLVE_MAX_SEVERITY_ENV) or "").strip().lower()
    try:
        max_severity = ConflictSeverity(raw_severity) if raw_severity else ConflictSeverity.LOW
    except ValueError as e:
        raise ConfigError(
            f"{AUTO_RESOLVE_MAX_SEVERITY_ENV} must be one of low/medium/high, got {raw_severity!r}"
        ) from e

    priorities = dict(DEFAULT_SOURCE_PRIORITIES)
    priorities_path = (source.get(SOURCE_PRIORITIES_PATH_ENV) or "").strip()
    if priorities_path:
        overrides = load_source_priorities(priorities_path)
        priorities.update(overrides)
        logger.info("Loaded %d source priority overrides from %s", len(overrides), priorities_path)

    try:
        return ReconciliationSettings(
            auto_resolution=AutoResolutionPolicy(enabled=enabled, max_severity=max_severity),
            source_priorities=priorities,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid reconciliation settings: {e}") from e
