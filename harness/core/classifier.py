"""Outcome classification."""

from __future__ import annotations

import logging

from common.models.run import Outcome
from harness.core.metrics import MetricsRegistry

logger = logging.getLogger(__name__)

# 409 is an idempotent conflict, not an error
ACCEPTED_STATUSES = frozenset({200, 409})

REQUESTS_TOTAL = "requests_total"
REAL_ERRORS = "real_errors"


class OutcomeClassifier:
    """Decide success or failure and update the run counters."""

    def __init__(self, registry: MetricsRegistry):
        self.requests_total = registry.counter(REQUESTS_TOTAL)
        self.real_errors = registry.rate(REAL_ERRORS)

    def classify(self, outcome: Outcome) -> Outcome:
        self.requests_total.add(1)

        outcome.success = outcome.status in ACCEPTED_STATUSES
        outcome.error_observation = 0 if outcome.success else 1
        self.real_errors.add(outcome.error_observation)

        if not outcome.success and outcome.is_server_error:
            logger.error(f"Critical error: {outcome.status}")

        return outcome
