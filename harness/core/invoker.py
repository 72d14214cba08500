"""Checkout request dispatch."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from common.models.config import RunConfig
from common.models.metrics import MetricType
from common.models.run import CheckoutRequest, Outcome
from harness.core.metrics import MetricsRegistry

logger = logging.getLogger(__name__)


def build_client(config: RunConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create the HTTP client shared by every virtual user for the run."""
    if config.no_connection_reuse:
        limits = httpx.Limits(max_connections=None, max_keepalive_connections=0)
    else:
        # One pooled keep-alive connection per virtual user
        max_vus = max(config.max_vus, 1)
        limits = httpx.Limits(max_connections=max_vus, max_keepalive_connections=max_vus)

    headers = {"User-Agent": config.user_agent}
    headers.update(config.checkout.headers)

    return httpx.AsyncClient(
        base_url=config.base_url,
        headers=headers,
        timeout=config.checkout.timeout,
        follow_redirects=config.max_redirects > 0,
        max_redirects=max(config.max_redirects, 1),
        limits=limits,
        verify=not config.insecure_skip_tls_verify,
        transport=transport,
    )


class CheckoutInvoker:
    """Send one checkout POST per iteration and record HTTP metrics."""

    def __init__(self, client: httpx.AsyncClient, config: RunConfig, registry: MetricsRegistry):
        self.client = client
        self.config = config
        self.registry = registry
        self.tags = {"name": config.checkout.tag}

    async def checkout(self, request: CheckoutRequest) -> Outcome:
        """POST the checkout. Any request failure resolves to status 0.

        The configured timeout bounds the whole request, body included.
        """
        params = {"user_id": request.user_id, "item_id": request.item_id}
        timeout = self.config.checkout.timeout
        started = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self.client.post(self.config.checkout.path, params=params),
                timeout=timeout,
            )
            status = response.status_code
            body = None if self.config.discard_response_bodies else response.content
            error = None
        except asyncio.TimeoutError:
            status, body = 0, None
            error = f"request timeout: exceeded {timeout:g}s"
            logger.debug(f"Checkout timed out for user={request.user_id} item={request.item_id}")
        except httpx.TimeoutException as e:
            status, body = 0, None
            error = f"request timeout: {e.__class__.__name__}"
            logger.debug(f"Checkout timed out for user={request.user_id} item={request.item_id}")
        except httpx.TransportError as e:
            status, body = 0, None
            error = f"transport error: {e}"
            logger.debug(f"Checkout transport error for user={request.user_id} item={request.item_id}: {e}")
        except httpx.RequestError as e:
            # Undecodable bodies and redirect loops
            status, body = 0, None
            error = f"request error: {e.__class__.__name__}: {e}"
            logger.debug(f"Checkout request error for user={request.user_id} item={request.item_id}: {e}")

        duration_ms = (time.perf_counter() - started) * 1000
        self._record(status, duration_ms)

        return Outcome(status=status, duration_ms=duration_ms, error=error, body=body)

    def _record(self, status: int, duration_ms: float) -> None:
        self.registry.add("http_reqs", MetricType.COUNTER, 1, self.tags)
        self.registry.add("http_req_duration", MetricType.TREND, duration_ms, self.tags, contains="time")
        self.registry.add("http_req_failed", MetricType.RATE, 0 if 200 <= status < 400 else 1)
