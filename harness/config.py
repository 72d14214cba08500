"""Harness configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic_settings import BaseSettings

from common.models.config import RunConfig
from common.utils import load_yaml, deep_merge
from harness.core.thresholds import parse_thresholds


# Logged at teardown when set
DURATION_ENV = "LOADTEST_DURATION"


class HarnessSettings(BaseSettings):
    """Harness settings loaded from environment variables."""

    # Run configuration file
    config_file: Path = Path("config/checkout.yaml")

    # Overrides applied on top of the config file
    base_url: Optional[str] = None
    summary_path: Optional[str] = None
    seed: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_prefix = "LOADTEST_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    def overrides(self) -> dict:
        """Settings that replace values from the config file."""
        result: dict[str, Any] = {}
        if self.base_url:
            result["base_url"] = self.base_url
        if self.summary_path:
            result["summary_path"] = self.summary_path
        if self.seed is not None:
            result["seed"] = self.seed
        return result


# Global settings instance
_settings: Optional[HarnessSettings] = None


def get_settings() -> HarnessSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = HarnessSettings()
    return _settings


def init_settings(**kwargs) -> HarnessSettings:
    """Initialize settings with custom values."""
    global _settings
    _settings = HarnessSettings(**kwargs)
    return _settings


def load_run_config(path: str | Path | None = None, overrides: Optional[dict] = None) -> RunConfig:
    """Load a run configuration from YAML and apply overrides.

    A missing ``path`` yields the built-in defaults.
    """
    data: dict = {}
    if path is not None:
        data = load_yaml(path)
    if overrides:
        data = deep_merge(data, overrides)
    config = RunConfig(**data)
    parse_thresholds(config.thresholds)
    return config
