"""Mock checkout server configuration settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class MockServerSettings(BaseSettings):
    """Mock server settings loaded from environment variables."""

    # Application
    app_name: str = "Mock Checkout Server"
    app_version: str = "1.0.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Checkout behaviour
    error_ratio: float = Field(default=0.0, ge=0, le=1)  # share of injected 500s
    purchases_limit: int = Field(default=10, ge=1)  # checkouts per user
    reserve_items: bool = True  # repeat checkouts of an item return 409
    latency_ms: float = Field(default=0.0, ge=0)
    checkout_code_len: int = 8
    seed: Optional[int] = None

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "MOCK_CHECKOUT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
_settings: Optional[MockServerSettings] = None


def get_settings() -> MockServerSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = MockServerSettings()
    return _settings


def init_settings(**kwargs) -> MockServerSettings:
    """Initialize settings with custom values."""
    global _settings
    _settings = MockServerSettings(**kwargs)
    return _settings
