"""Models and utilities shared across the harness, mock server and CLI."""

from common.models.config import RunConfig, Stage
from common.models.metrics import MetricsReport, SummaryDocument
from common.models.run import RunResult, RunStatus, Outcome

__all__ = [
    "RunConfig",
    "Stage",
    "MetricsReport",
    "SummaryDocument",
    "RunResult",
    "RunStatus",
    "Outcome",
]
