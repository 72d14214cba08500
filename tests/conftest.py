"""Pytest configuration and shared fixtures."""

import random
import tempfile
import shutil
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest

from common.models.config import RunConfig
from harness.core.metrics import MetricsRegistry
from harness.core.pools import generate_pool
from harness.core.scenario import RunContext


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def registry() -> MetricsRegistry:
    """Empty metrics registry."""
    return MetricsRegistry()


@pytest.fixture
def run_context() -> RunContext:
    """Small pools for iteration tests."""
    return RunContext(users=generate_pool("users", 20), items=generate_pool("items", 50))


@pytest.fixture
def sample_run_config() -> dict:
    """Sample run configuration."""
    return {
        "name": "test-run",
        "base_url": "http://checkout.test",
        "start_vus": 2,
        "stages": [{"duration": "1s", "target": 2}],
        "thresholds": {
            "real_errors": ["rate<0.01"],
            "http_req_duration": ["p(95)<500", "p(99)<1000"],
        },
        "setup_timeout": "30s",
        "teardown_timeout": "10s",
        "graceful_stop": "1s",
        "pools": {"user_pool_size": 20, "item_pool_size": 50},
        "seed": 7,
        "summary_path": None,
    }


@pytest.fixture
def run_config(sample_run_config) -> RunConfig:
    return RunConfig(**sample_run_config)


@pytest.fixture
def status_transport() -> Callable[..., httpx.MockTransport]:
    """Build a transport answering each checkout with statuses from a callable.

    The handler records every request on ``transport.requests``.
    """
    def factory(status_for: Callable[[httpx.Request], int], body: bytes = b'{"code": "1:1:abcdefgh"}'):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            status = status_for(request)
            content = body if status == 200 else b"error"
            return httpx.Response(status, content=content)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return factory


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)
