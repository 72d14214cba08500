"""Checkout Load Harness - run entry point."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import httpx

from common.models.config import RunConfig
from common.models.run import RunResult
from harness.config import HarnessSettings, get_settings
from harness.core.driver import LoadDriver
from harness.core.metrics import MetricsRegistry
from harness.core.scenario import CheckoutScenario

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[HarnessSettings] = None) -> None:
    """Configure root logging once for the process."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # One line per request is too chatty at load
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run_load_test(
    config: RunConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    write_summary: bool = True,
) -> RunResult:
    """Run the checkout scenario and emit its summary."""
    registry = MetricsRegistry()
    scenario = CheckoutScenario(config, registry, transport=transport)
    driver = LoadDriver(scenario, config, registry)

    result = await driver.run()

    if result.summary is not None:
        print(result.summary.text)
        if write_summary:
            scenario.reporter.write(result.summary)

    return result
