"""Engine settings and configuration file loading.

Runtime settings (buffer capacity, config path, log level) come from
environment variables with the ``SIGNAL_ENGINE_`` prefix or a .env
file. Component tuning (indicator periods, thresholds, source weights)
lives in engine.yaml:

    fusion:
      traditional_weight: 0.4
      ai_weight: 0.6
      confidence_threshold: 0.65
    risk:
      high_cutoff: 75
    model_weights:
      lstm: 0.8

A missing file means defaults for everything.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import pydantic
import yaml
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_engine.errors import ConfigError
from signal_engine.models import DEFAULT_CAPACITY, EngineConfig

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path("engine.yaml")


class EngineSettings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNAL_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    buffer_capacity: int = DEFAULT_CAPACITY
    config_path: Path | None = None
    log_level: str = "INFO"


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load component configuration from a YAML file.

    A .env file next to the YAML is loaded into the environment first
    (existing variables win), so settings read afterwards see it too.
    Falls back to defaults if the file doesn't exist.

    Raises:
        ConfigError: If the file is not a YAML mapping or fails validation.
    """
    config_path = path or get_settings().config_path or _DEFAULT_PATH

    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No engine config found at %s, using defaults", config_path)
        return EngineConfig()

    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{config_path}: invalid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path}: expected a mapping at top level")

    try:
        config = EngineConfig(**raw)
    except pydantic.ValidationError as e:
        raise ConfigError(f"{config_path}: {e}") from e
    config.fusion.check()
    for model_id, weight in config.model_weights.items():
        if not 0.0 <= weight <= 1.0:
            raise ConfigError(
                f"{config_path}: weight for model '{model_id}' must be in [0, 1]"
            )

    logger.info(
        "Loaded engine config: traditional=%.2f ai=%.2f threshold=%.2f, %d model weights",
        config.fusion.traditional_weight,
        config.fusion.ai_weight,
        config.fusion.confidence_threshold,
        len(config.model_weights),
    )
    return config
