"""Virtual user scheduling for a load test run."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from common.models.config import RunConfig, Stage
from common.models.run import RunPhase, RunResult, RunStatus
from common.utils import generate_run_id, format_duration
from harness.core.metrics import MetricsRegistry
from harness.core.scenario import LoadScenario, RunContext
from harness.core.thresholds import evaluate_thresholds, parse_thresholds, prepare_registry

logger = logging.getLogger(__name__)


class SetupError(RuntimeError):
    """Raised when the one-time setup phase fails or times out."""


def stage_target_at(stages: list[Stage], elapsed: float, start_vus: int = 0) -> int:
    """Virtual users wanted ``elapsed`` seconds into the run.

    Each stage ramps linearly from the previous stage's target (or
    ``start_vus`` for the first) to its own target.
    """
    previous = start_vus
    offset = 0.0
    for stage in stages:
        if elapsed < offset + stage.duration:
            progress = (elapsed - offset) / stage.duration if stage.duration else 1.0
            return int(round(previous + (stage.target - previous) * progress))
        previous = stage.target
        offset += stage.duration
    return previous


class _VirtualUser:
    def __init__(self, vu_id: int):
        self.vu_id = vu_id
        self.stop = asyncio.Event()
        self.task: Optional[asyncio.Task] = None


class LoadDriver:
    """Run a scenario's four phases under the configured load profile."""

    tick_interval = 0.1

    def __init__(
        self,
        scenario: LoadScenario,
        config: RunConfig,
        registry: MetricsRegistry,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scenario = scenario
        self.config = config
        self.registry = registry
        self.clock = clock
        self.thresholds = parse_thresholds(config.thresholds)

        self._vus: list[_VirtualUser] = []
        self._retired: list[_VirtualUser] = []
        self._next_vu_id = 1
        self._result = RunResult(id=generate_run_id(), name=config.name)

    @property
    def phase(self) -> RunPhase:
        return self._result.phase

    @property
    def active_vus(self) -> int:
        return len(self._vus)

    async def run(self) -> RunResult:
        """Execute setup, stages, teardown and summary in order."""
        result = self._result
        result.status = RunStatus.RUNNING
        result.started_at = datetime.utcnow()
        logger.info(
            f"Starting run {result.id}: {len(self.config.stages)} stage(s), "
            f"{format_duration(self.config.total_duration)}, up to {self.config.max_vus} VUs"
        )

        context = await self._setup()

        started = self.clock()
        try:
            await self._run_stages(context, started)
        finally:
            await self._stop_all()
        duration = self.clock() - started

        await self._teardown(context)

        result.phase = RunPhase.SUMMARY
        prepare_registry(self.registry, self.thresholds)
        report = self.registry.snapshot(duration)
        passed = evaluate_thresholds(report, self.thresholds)
        result.summary = self.scenario.summarize(report, passed)

        result.phase = RunPhase.DONE
        result.status = RunStatus.COMPLETED
        result.completed_at = datetime.utcnow()
        logger.info(f"Run {result.id} completed, thresholds {'passed' if passed else 'failed'}")
        return result

    async def _setup(self) -> RunContext:
        self._result.phase = RunPhase.SETUP
        try:
            return await asyncio.wait_for(self.scenario.initialize(), timeout=self.config.setup_timeout)
        except asyncio.TimeoutError:
            self._fail()
            raise SetupError(f"Setup timed out after {self.config.setup_timeout:g}s")
        except Exception as e:
            self._fail()
            raise SetupError(f"Setup failed: {e}") from e

    def _fail(self) -> None:
        self._result.status = RunStatus.FAILED
        self._result.completed_at = datetime.utcnow()

    async def _teardown(self, context: RunContext) -> None:
        self._result.phase = RunPhase.TEARDOWN
        try:
            await asyncio.wait_for(self.scenario.finalize(context), timeout=self.config.teardown_timeout)
        except asyncio.TimeoutError:
            message = f"Teardown timed out after {self.config.teardown_timeout:g}s"
            logger.error(message)
            self._result.teardown_error = message
        except Exception as e:
            logger.error(f"Teardown failed: {e}", exc_info=True)
            self._result.teardown_error = str(e)

    async def _run_stages(self, context: RunContext, started: float) -> None:
        self._result.phase = RunPhase.RUNNING
        total = self.config.total_duration
        self.registry.gauge("vus_max").add(self.config.max_vus)

        while True:
            elapsed = self.clock() - started
            if elapsed >= total:
                break

            target = stage_target_at(self.config.stages, elapsed, self.config.start_vus)
            self._scale_to(target, context)
            self.registry.gauge("vus").add(len(self._vus))

            await asyncio.sleep(min(self.tick_interval, max(total - elapsed, 0)))

    def _scale_to(self, target: int, context: RunContext) -> None:
        while len(self._vus) < target:
            vu = _VirtualUser(self._next_vu_id)
            self._next_vu_id += 1
            vu.task = asyncio.create_task(self._vu_loop(vu, context))
            self._vus.append(vu)

        while len(self._vus) > target:
            # Ramp-down lets the in-flight iteration finish
            vu = self._vus.pop()
            vu.stop.set()
            self._retired.append(vu)

    async def _vu_loop(self, vu: _VirtualUser, context: RunContext) -> None:
        iterations = self.registry.counter("iterations")
        iteration_duration = self.registry.trend("iteration_duration", time=True)

        while not vu.stop.is_set():
            started = time.perf_counter()
            try:
                await self.scenario.run_iteration(context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"VU {vu.vu_id} iteration failed: {e}")
            iterations.add(1)
            iteration_duration.add((time.perf_counter() - started) * 1000)

            # Iterations against an instant transport never suspend on their own
            await asyncio.sleep(0)

    async def _stop_all(self) -> None:
        """Signal every VU, wait out the graceful stop, then cancel stragglers."""
        self._result.phase = RunPhase.GRACEFUL_STOP
        everyone = self._vus + self._retired
        self._vus = []
        self._retired = []
        for vu in everyone:
            vu.stop.set()

        tasks = [vu.task for vu in everyone if vu.task is not None]
        if not tasks:
            return

        if self.config.graceful_stop > 0:
            done, pending = await asyncio.wait(tasks, timeout=self.config.graceful_stop)
        else:
            done = {t for t in tasks if t.done()}
            pending = {t for t in tasks if not t.done()}

        interrupted = self.registry.counter("interrupted_iterations")
        for task in pending:
            task.cancel()
        if pending:
            interrupted.add(len(pending))
            logger.info(f"Interrupted {len(pending)} in-flight iteration(s) at end of run")
            await asyncio.gather(*pending, return_exceptions=True)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"VU task ended with error: {task.exception()}")

        self.registry.gauge("vus").add(0)
