"""Load scenarios and the checkout scenario."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from common.models.config import RunConfig
from common.models.metrics import MetricsReport, SummaryDocument
from common.models.run import Outcome
from common.utils import get_env
from harness.config import DURATION_ENV
from harness.core.classifier import OutcomeClassifier
from harness.core.invoker import CheckoutInvoker, build_client
from harness.core.metrics import MetricsRegistry
from harness.core.pools import IdentifierPool, build_pools
from harness.core.reporter import SummaryReporter
from harness.core.sampler import RequestSampler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Read-only state produced by setup and shared by every iteration."""
    users: IdentifierPool
    items: IdentifierPool


class LoadScenario(ABC):
    """Four-phase lifecycle driven by :class:`harness.core.driver.LoadDriver`."""

    @abstractmethod
    async def initialize(self) -> RunContext:
        """Run once before any traffic. Failure aborts the run."""

    @abstractmethod
    async def run_iteration(self, context: RunContext) -> Outcome:
        """Run one iteration. Called concurrently by every virtual user."""

    @abstractmethod
    async def finalize(self, context: RunContext) -> None:
        """Run once after traffic has stopped."""

    @abstractmethod
    def summarize(self, report: MetricsReport, thresholds_passed: bool = True) -> SummaryDocument:
        """Build the end-of-run summary."""


class CheckoutScenario(LoadScenario):
    """Random users checking out random items."""

    def __init__(
        self,
        config: RunConfig,
        registry: MetricsRegistry,
        sampler: Optional[RequestSampler] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.registry = registry
        self.sampler = sampler or RequestSampler(seed=config.seed)
        self.classifier = OutcomeClassifier(registry)
        self.reporter = SummaryReporter(config.summary_path)

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._invoker: Optional[CheckoutInvoker] = None

    async def initialize(self) -> RunContext:
        users, items = build_pools(self.config.pools)
        self._client = build_client(self.config, self._transport)
        self._invoker = CheckoutInvoker(self._client, self.config, self.registry)
        return RunContext(users=users, items=items)

    async def run_iteration(self, context: RunContext) -> Outcome:
        if self._invoker is None:
            raise RuntimeError("Scenario not initialized")

        request = self.sampler.sample(context)
        outcome = await self._invoker.checkout(request)
        self.classifier.classify(outcome)

        if outcome.is_conflict:
            return outcome

        if outcome.status == 200 and outcome.body:
            outcome.checkout_code = _parse_checkout_code(outcome.body)

        return outcome

    async def finalize(self, context: RunContext) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._invoker = None

        logger.info("Test completed successfully")
        logger.info(f"Total test duration: {get_env(DURATION_ENV) or 'N/A'}")

    def summarize(self, report: MetricsReport, thresholds_passed: bool = True) -> SummaryDocument:
        document = self.reporter.build(report, thresholds_passed)
        self.reporter.log_summary(document)
        return document


def _parse_checkout_code(body: bytes) -> Optional[str]:
    try:
        data = json.loads(body)
    except ValueError:
        logger.debug("Checkout response body is not JSON")
        return None
    if isinstance(data, dict):
        code = data.get("code")
        return str(code) if code is not None else None
    return None
