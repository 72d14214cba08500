"""Load test run configuration models."""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.utils import parse_duration


DEFAULT_HEADERS = {"Accept-Encoding": "gzip, deflate"}


class Stage(BaseModel):
    """A time window ramping toward a target number of virtual users."""
    model_config = ConfigDict(frozen=True)

    duration: float = Field(..., ge=0, description="Stage duration in seconds")
    target: int = Field(..., ge=0, description="Target virtual users at stage end")

    @field_validator("duration", mode="before")
    @classmethod
    def parse_stage_duration(cls, v):
        return parse_duration(v)


class CheckoutOptions(BaseModel):
    """Per-request parameters for the checkout call."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(default="/checkout", description="Endpoint path")
    timeout: float = Field(default=5.0, gt=0, description="Request timeout in seconds")
    headers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))
    tag: str = Field(default="checkout", description="Metrics grouping label")

    @field_validator("timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v):
        return parse_duration(v)


class PoolConfig(BaseModel):
    """Identifier pool sizes."""
    model_config = ConfigDict(frozen=True)

    user_pool_size: int = Field(default=2000, description="Number of user IDs")
    item_pool_size: int = Field(default=10000, description="Number of item IDs")


class RunConfig(BaseModel):
    """Immutable description of a single load test run."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="checkout", description="Run name")
    base_url: str = Field(default="http://localhost:8000", description="Target base URL")

    # Load profile
    start_vus: int = Field(default=1, ge=0, description="Virtual users before the first stage")
    stages: list[Stage] = Field(
        default_factory=lambda: [Stage(duration=10, target=1000)],
        description="Ramp profile",
    )

    # Post-run pass/fail criteria, keyed by metric name
    thresholds: dict[str, list[str]] = Field(default_factory=dict)

    # Transport
    no_connection_reuse: bool = False
    max_redirects: int = Field(default=0, ge=0)
    discard_response_bodies: bool = False
    insecure_skip_tls_verify: bool = False
    user_agent: str = "loadtest/1.0"

    # Phase timeouts
    setup_timeout: float = Field(default=30.0, gt=0)
    teardown_timeout: float = Field(default=10.0, gt=0)
    graceful_stop: float = Field(default=5.0, ge=0)

    checkout: CheckoutOptions = Field(default_factory=CheckoutOptions)
    pools: PoolConfig = Field(default_factory=PoolConfig)

    seed: Optional[int] = Field(default=None, description="Random seed for ID sampling")
    summary_path: Optional[str] = Field(default="summary.json", description="JSON summary output")

    @field_validator("setup_timeout", "teardown_timeout", "graceful_stop", mode="before")
    @classmethod
    def parse_timeouts(cls, v):
        return parse_duration(v)

    @field_validator("stages")
    @classmethod
    def validate_stages(cls, v):
        if not v:
            raise ValueError("At least one stage is required")
        return v

    @property
    def total_duration(self) -> float:
        """Sum of all stage durations in seconds."""
        return sum(stage.duration for stage in self.stages)

    @property
    def max_vus(self) -> int:
        """Highest virtual user count the profile reaches."""
        return max([self.start_vus] + [stage.target for stage in self.stages])
