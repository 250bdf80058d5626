"""Configuration for the analysis pipeline."""

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

ENV_PREFIX = "PAGEGRADE_"


class ConfigError(ValueError):
    """Raised for unreadable or invalid pipeline configuration."""


@dataclass(frozen=True)
class PipelineConfig:
    """Constants controlling stage timeouts, gating, caching and scoring."""

    detector_timeout: float = 5.0
    pipeline_timeout: float = 30.0

    enhancement_enabled: bool = True
    enhancement_timeout: float = 10.0
    confidence_threshold: float = 0.7
    enhancement_endpoint: str | None = None

    cache_enabled: bool = True
    cache_bucket_seconds: int = 300
    cache_max_entries: int | None = None

    acceptable_score: float = 70.0
    high_priority_impact: float = 5.0
    medium_priority_impact: float = 2.0

    fetch_timeout: float = 20.0

    def __post_init__(self) -> None:
        for name in ("detector_timeout", "pipeline_timeout", "enhancement_timeout", "fetch_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigError("confidence_threshold must be within [0, 1]")
        if self.cache_bucket_seconds <= 0:
            raise ConfigError("cache_bucket_seconds must be positive")
        if self.cache_max_entries is not None and self.cache_max_entries < 1:
            raise ConfigError("cache_max_entries must be positive or empty")
        if not 0.0 <= self.acceptable_score <= 100.0:
            raise ConfigError("acceptable_score must be within [0, 100]")
        if self.medium_priority_impact > self.high_priority_impact:
            raise ConfigError("medium_priority_impact must not exceed high_priority_impact")


DEFAULT_PIPELINE_CONFIG = PipelineConfig()

# "float", "bool", "int | None", ...
_FIELD_TYPES = {
    f.name: f.type.__name__ if isinstance(f.type, type) else str(f.type)
    for f in fields(PipelineConfig)
}


def _coerce(name: str, value: Any) -> Any:
    kind = _FIELD_TYPES[name]
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", "none", "null"}):
        if "None" in kind:
            return None
        raise ConfigError(f"{name} must not be empty")
    try:
        if kind.startswith("bool"):
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() not in {"0", "false", "off", "no"}
        if kind.startswith("int"):
            return int(value)
        if kind.startswith("float"):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e
    return str(value)


def config_from_mapping(
    data: Mapping[str, Any],
    base: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> PipelineConfig:
    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    return replace(base, **{name: _coerce(name, value) for name, value in data.items()})


def load_pipeline_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """Build config from defaults, an optional YAML file, then env overrides.

    Environment variables are ``PAGEGRADE_<FIELD>`` in upper case, e.g.
    ``PAGEGRADE_CONFIDENCE_THRESHOLD=0.8``.
    """
    config = DEFAULT_PIPELINE_CONFIG

    if path is not None:
        file_path = Path(path)
        try:
            data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
        except OSError as e:
            raise ConfigError(f"Failed to read config {file_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {file_path} must be a mapping")
        config = config_from_mapping(data, config)

    environ = os.environ if env is None else env
    overrides = {
        name: environ[ENV_PREFIX + name.upper()]
        for name in _FIELD_TYPES
        if ENV_PREFIX + name.upper() in environ
    }
    if overrides:
        config = config_from_mapping(overrides, config)
    return config
