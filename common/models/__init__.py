"""Common data models for the checkout load harness."""

from common.models.config import RunConfig, Stage, CheckoutOptions, PoolConfig
from common.models.metrics import (
    MetricType,
    MetricSnapshot,
    MetricsReport,
    LatencyStats,
    CustomMetrics,
    SummaryDocument,
)
from common.models.run import RunResult, RunStatus, RunPhase, Outcome, CheckoutRequest

__all__ = [
    "RunConfig",
    "Stage",
    "CheckoutOptions",
    "PoolConfig",
    "MetricType",
    "MetricSnapshot",
    "MetricsReport",
    "LatencyStats",
    "CustomMetrics",
    "SummaryDocument",
    "RunResult",
    "RunStatus",
    "RunPhase",
    "Outcome",
    "CheckoutRequest",
]
