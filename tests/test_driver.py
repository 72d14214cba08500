"""Tests for the load driver, including a short end-to-end run."""

import asyncio

import pytest

from common.models.config import RunConfig, Stage
from common.models.run import Outcome, RunPhase, RunStatus
from harness.core.driver import LoadDriver, SetupError, stage_target_at
from harness.core.metrics import MetricsRegistry
from harness.core.pools import generate_pool
from harness.core.reporter import SummaryReporter
from harness.core.scenario import CheckoutScenario, LoadScenario, RunContext
from harness.core.thresholds import ThresholdError
from harness.main import run_load_test


class StubScenario(LoadScenario):
    """Scenario with controllable phase behaviour."""

    def __init__(self, setup_delay=0.0, teardown_delay=0.0, setup_error=None, iteration_error=None):
        self.setup_delay = setup_delay
        self.teardown_delay = teardown_delay
        self.setup_error = setup_error
        self.iteration_error = iteration_error
        self.iterations = 0
        self.finalized = False
        self.summarized = False

    async def initialize(self):
        await asyncio.sleep(self.setup_delay)
        if self.setup_error:
            raise self.setup_error
        return RunContext(users=generate_pool("users", 2), items=generate_pool("items", 2))

    async def run_iteration(self, context):
        self.iterations += 1
        await asyncio.sleep(0.001)
        if self.iteration_error:
            raise self.iteration_error
        return Outcome(status=200, duration_ms=1, success=True)

    async def finalize(self, context):
        await asyncio.sleep(self.teardown_delay)
        self.finalized = True

    def summarize(self, report, thresholds_passed=True):
        self.summarized = True
        return SummaryReporter(None).build(report, thresholds_passed)


def short_config(**kwargs) -> RunConfig:
    values = {
        "start_vus": 3,
        "stages": [{"duration": "300ms", "target": 3}],
        "graceful_stop": "1s",
        "summary_path": None,
    }
    values.update(kwargs)
    return RunConfig(**values)


class TestStageTarget:
    """Tests for the ramp profile."""

    def test_ramp_up_hold_down(self):
        stages = [Stage(duration=10, target=500), Stage(duration=10, target=1000), Stage(duration=10, target=0)]

        assert stage_target_at(stages, 0, start_vus=0) == 0
        assert stage_target_at(stages, 5, start_vus=0) == 250
        assert stage_target_at(stages, 10, start_vus=0) == 500
        assert stage_target_at(stages, 15, start_vus=0) == 750
        assert stage_target_at(stages, 25, start_vus=0) == 500
        assert stage_target_at(stages, 30, start_vus=0) == 0

    def test_flat_profile(self):
        stages = [Stage(duration=10, target=1000)]

        assert stage_target_at(stages, 0, start_vus=1000) == 1000
        assert stage_target_at(stages, 9.9, start_vus=1000) == 1000

    def test_single_stage_ramps_from_start(self):
        stages = [Stage(duration=10, target=1000)]

        assert stage_target_at(stages, 0, start_vus=1) == 1
        assert stage_target_at(stages, 5, start_vus=1) == 500

    def test_zero_duration_stage_jumps(self):
        stages = [Stage(duration=0, target=5), Stage(duration=10, target=5)]

        assert stage_target_at(stages, 0, start_vus=0) == 5


@pytest.mark.asyncio
class TestLoadDriver:
    """Tests for the driver phases."""

    async def test_phases_run_in_order(self):
        scenario = StubScenario()
        registry = MetricsRegistry()
        driver = LoadDriver(scenario, short_config(), registry)

        result = await driver.run()

        assert result.status == RunStatus.COMPLETED
        assert result.phase == RunPhase.DONE
        assert scenario.iterations > 0
        assert scenario.finalized is True
        assert scenario.summarized is True
        assert registry.get("iterations").count == scenario.iterations
        assert registry.get("vus_max").value == 3
        assert registry.get("vus").value == 0
        assert result.summary.report.duration_seconds >= 0.3

    async def test_setup_failure_aborts(self):
        scenario = StubScenario(setup_error=ValueError("bad pool"))
        driver = LoadDriver(scenario, short_config(), MetricsRegistry())

        with pytest.raises(SetupError):
            await driver.run()

        assert scenario.iterations == 0
        assert scenario.finalized is False
        assert driver._result.status == RunStatus.FAILED

    async def test_setup_timeout_aborts(self):
        scenario = StubScenario(setup_delay=1.0)
        driver = LoadDriver(scenario, short_config(setup_timeout="50ms"), MetricsRegistry())

        with pytest.raises(SetupError):
            await driver.run()

        assert scenario.iterations == 0

    async def test_teardown_timeout_still_summarizes(self):
        scenario = StubScenario(teardown_delay=1.0)
        driver = LoadDriver(scenario, short_config(teardown_timeout="50ms"), MetricsRegistry())

        result = await driver.run()

        assert result.teardown_error is not None
        assert result.summary is not None
        assert scenario.summarized is True

    async def test_iteration_errors_do_not_abort(self):
        scenario = StubScenario(iteration_error=RuntimeError("boom"))
        registry = MetricsRegistry()
        driver = LoadDriver(scenario, short_config(), registry)

        result = await driver.run()

        assert result.status == RunStatus.COMPLETED
        assert scenario.iterations > 1
        assert registry.get("iterations").count == scenario.iterations

    async def test_scale_up_and_down(self, run_context):
        driver = LoadDriver(StubScenario(), short_config(), MetricsRegistry())

        driver._scale_to(4, run_context)
        assert driver.active_vus == 4

        driver._scale_to(1, run_context)
        assert driver.active_vus == 1
        assert all(vu.stop.is_set() for vu in driver._retired)

        await driver._stop_all()
        assert driver.active_vus == 0

    async def test_graceful_stop_zero_interrupts(self, run_context):
        registry = MetricsRegistry()
        driver = LoadDriver(StubScenario(), short_config(graceful_stop=0), registry)

        driver._scale_to(2, run_context)
        await asyncio.sleep(0)
        await driver._stop_all()

        assert registry.get("interrupted_iterations").count == 2

    async def test_invalid_threshold_rejected(self):
        config = short_config(thresholds={"http_reqs": ["rate >> 5"]})

        with pytest.raises(ThresholdError):
            LoadDriver(StubScenario(), config, MetricsRegistry())


@pytest.mark.asyncio
class TestEndToEnd:
    """Short runs of the checkout scenario against a stubbed endpoint."""

    @pytest.fixture
    def mostly_ok_transport(self, status_transport):
        """Answers 200 except every hundredth request, which gets a 500."""
        counter = {"n": 0}

        def status_for(request):
            counter["n"] += 1
            return 500 if counter["n"] % 100 == 0 else 200

        return status_transport(status_for)

    async def test_error_rate_and_counts(self, mostly_ok_transport, temp_dir):
        config = RunConfig(
            base_url="http://checkout.test",
            start_vus=20,
            stages=[{"duration": "1s", "target": 20}],
            graceful_stop="1s",
            pools={"user_pool_size": 2000, "item_pool_size": 10000},
            thresholds={
                "real_errors": ["rate<0.02"],
                "http_req_duration": ["p(95)<500", "p(99)<1000"],
            },
            summary_path=str(temp_dir / "summary.json"),
        )

        result = await run_load_test(config, transport=mostly_ok_transport)

        summary = result.summary
        report = summary.report
        total = report.value("http_reqs", "count")
        assert total == len(mostly_ok_transport.requests)
        assert total >= 100
        assert report.value("requests_total", "count") == total
        assert report.value("iterations", "count") == total
        assert report.value("real_errors", "rate") == pytest.approx(0.01, abs=0.005)
        assert summary.custom_metrics.total_requests == total
        assert summary.custom_metrics.avg_rps == int(total / report.duration_seconds + 0.5)
        assert result.thresholds_passed is True
        assert (temp_dir / "summary.json").exists()

    async def test_failed_threshold(self, mostly_ok_transport):
        config = RunConfig(
            base_url="http://checkout.test",
            start_vus=5,
            stages=[{"duration": "300ms", "target": 5}],
            pools={"user_pool_size": 10, "item_pool_size": 10},
            thresholds={"http_reqs": ["rate>1000000000"]},
            summary_path=None,
        )

        result = await run_load_test(config, transport=mostly_ok_transport, write_summary=False)

        assert result.thresholds_passed is False
        snapshot = result.summary.report.metrics["http_reqs"]
        assert snapshot.thresholds["rate>1000000000"].ok is False

    async def test_setup_failure_from_pool_size(self):
        config = RunConfig(
            stages=[{"duration": "100ms", "target": 1}],
            pools={"user_pool_size": 0, "item_pool_size": 10},
            summary_path=None,
        )
        scenario = CheckoutScenario(config, MetricsRegistry())

        with pytest.raises(SetupError):
            await LoadDriver(scenario, config, MetricsRegistry()).run()
