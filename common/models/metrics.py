"""Metrics and summary data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, Field


class MetricType(str, Enum):
    """Metric kinds."""
    COUNTER = "counter"
    GAUGE = "gauge"
    RATE = "rate"
    TREND = "trend"


class LatencyStats(BaseModel):
    """Latency statistics in milliseconds."""
    avg: float = Field(default=0, description="Average latency")
    min: float = Field(default=0, description="Minimum latency")
    med: float = Field(default=0, description="Median latency")
    max: float = Field(default=0, description="Maximum latency")
    p90: float = Field(default=0, description="90th percentile")
    p95: float = Field(default=0, description="95th percentile")
    p99: float = Field(default=0, description="99th percentile")

    @classmethod
    def from_values(cls, values: dict[str, float]) -> "LatencyStats":
        """Build from trend snapshot values."""
        return cls(
            avg=values.get("avg", 0),
            min=values.get("min", 0),
            med=values.get("med", 0),
            max=values.get("max", 0),
            p90=values.get("p(90)", 0),
            p95=values.get("p(95)", 0),
            p99=values.get("p(99)", 0),
        )


class ThresholdResult(BaseModel):
    """Outcome of one threshold expression."""
    ok: bool


class MetricSnapshot(BaseModel):
    """Final values of a single metric."""
    type: MetricType
    contains: str = Field(default="default", description="'time' for durations")
    values: dict[str, Union[int, float]] = Field(default_factory=dict)
    thresholds: dict[str, ThresholdResult] = Field(default_factory=dict)


class RunState(BaseModel):
    """Run timing state."""
    test_run_duration_ms: float = Field(default=0)


class MetricsReport(BaseModel):
    """All aggregate metrics at the end of a run."""
    state: RunState = Field(default_factory=RunState)
    metrics: dict[str, MetricSnapshot] = Field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return self.state.test_run_duration_ms / 1000

    def value(self, metric: str, key: str, default: Optional[float] = None) -> Optional[float]:
        """Look up a metric value, tolerating absent metrics."""
        snapshot = self.metrics.get(metric)
        if snapshot is None:
            return default
        return snapshot.values.get(key, default)


class CustomMetrics(BaseModel):
    """Derived figures embedded in the JSON summary."""
    avg_rps: int = 0
    total_requests: int = 0
    duration_seconds: float = 0


class SummaryDocument(BaseModel):
    """Write-once end-of-run summary."""
    report: MetricsReport
    custom_metrics: CustomMetrics
    latency_ms: LatencyStats = Field(default_factory=LatencyStats)
    max_rps: int = 0
    error_rate_percent: float = 0
    thresholds_passed: bool = True
    text: str = ""

    def to_json(self) -> dict:
        """Full raw metrics plus the custom_metrics block."""
        data = self.report.model_dump(mode="json")
        data["custom_metrics"] = self.custom_metrics.model_dump(mode="json")
        return data
