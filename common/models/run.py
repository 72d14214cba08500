"""Run lifecycle models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from common.models.metrics import SummaryDocument


class RunStatus(str, Enum):
    """Run status states."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunPhase(str, Enum):
    """Current run phase."""
    INIT = "init"
    SETUP = "setup"
    RUNNING = "running"
    GRACEFUL_STOP = "graceful_stop"
    TEARDOWN = "teardown"
    SUMMARY = "summary"
    DONE = "done"


@dataclass(frozen=True)
class CheckoutRequest:
    """Identifiers drawn for one iteration."""
    user_id: int
    item_id: int


@dataclass
class Outcome:
    """Result of one iteration's checkout call."""
    status: int
    duration_ms: float
    success: bool = False
    error_observation: int = 0
    error: Optional[str] = None
    body: Optional[bytes] = None
    checkout_code: Optional[str] = None

    @property
    def is_conflict(self) -> bool:
        return self.status == 409

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class RunResult(BaseModel):
    """Final state of a completed run."""
    id: str = Field(..., description="Unique run identifier")
    name: str = Field(..., description="Run name")
    status: RunStatus = Field(default=RunStatus.PENDING)
    phase: RunPhase = Field(default=RunPhase.INIT)

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    summary: Optional[SummaryDocument] = None
    teardown_error: Optional[str] = None

    @property
    def thresholds_passed(self) -> bool:
        if self.summary is None:
            return False
        return self.summary.thresholds_passed
