"""Aggregate metrics shared by all virtual users.

Every observation is made from coroutines running on a single event loop, so
the accumulators below need no locking.
"""

from __future__ import annotations

import math
from typing import Optional

from common.models.metrics import MetricType, MetricSnapshot, MetricsReport, RunState


TREND_PERCENTILES = (90, 95, 99)


def percentile(sorted_values: list[float], pct: float) -> float:
    """Linear-interpolated percentile of an already sorted list."""
    if not sorted_values:
        return 0.0
    k = (len(sorted_values) - 1) * (pct / 100.0)
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return sorted_values[int(k)]
    return sorted_values[f] * (c - k) + sorted_values[c] * (k - f)


def format_percentile_key(pct: float) -> str:
    """Render a percentile as its summary key, e.g. ``p(95)`` or ``p(99.9)``."""
    if float(pct).is_integer():
        return f"p({int(pct)})"
    return f"p({pct:g})"


class Metric:
    """Base class for metric accumulators."""

    type: MetricType
    contains = "default"

    def __init__(self, name: str, contains: Optional[str] = None):
        self.name = name
        if contains:
            self.contains = contains

    def add(self, value: float) -> None:
        raise NotImplementedError

    def values(self, duration_seconds: float) -> dict[str, float]:
        raise NotImplementedError

    def snapshot(self, duration_seconds: float) -> MetricSnapshot:
        return MetricSnapshot(
            type=self.type,
            contains=self.contains,
            values=self.values(duration_seconds),
        )


class Counter(Metric):
    """Monotonically increasing sum."""

    type = MetricType.COUNTER

    def __init__(self, name: str, contains: Optional[str] = None):
        super().__init__(name, contains)
        self.count: float = 0

    def add(self, value: float = 1) -> None:
        if value < 0:
            raise ValueError(f"Counter {self.name} cannot decrease")
        self.count += value

    def values(self, duration_seconds: float) -> dict[str, float]:
        rate = self.count / duration_seconds if duration_seconds > 0 else 0.0
        return {"count": self.count, "rate": rate}


class Gauge(Metric):
    """Last observed value together with its extremes."""

    type = MetricType.GAUGE

    def __init__(self, name: str, contains: Optional[str] = None):
        super().__init__(name, contains)
        self.value: Optional[float] = None
        self.min: Optional[float] = None
        self.max: Optional[float] = None

    def add(self, value: float) -> None:
        self.value = value
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    def values(self, duration_seconds: float) -> dict[str, float]:
        return {
            "value": self.value or 0.0,
            "min": self.min or 0.0,
            "max": self.max or 0.0,
        }


class Rate(Metric):
    """Fraction of non-zero observations."""

    type = MetricType.RATE

    def __init__(self, name: str, contains: Optional[str] = None):
        super().__init__(name, contains)
        self.passes = 0
        self.total = 0

    def add(self, value: float) -> None:
        self.total += 1
        if value:
            self.passes += 1

    @property
    def rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.passes / self.total

    def values(self, duration_seconds: float) -> dict[str, float]:
        return {
            "rate": self.rate,
            "passes": self.passes,
            "fails": self.total - self.passes,
        }


class Trend(Metric):
    """Distribution of observed values."""

    type = MetricType.TREND

    def __init__(self, name: str, contains: Optional[str] = None):
        super().__init__(name, contains)
        self._values: list[float] = []
        self.extra_percentiles: set[float] = set()

    def add(self, value: float) -> None:
        self._values.append(value)

    def __len__(self) -> int:
        return len(self._values)

    def values(self, duration_seconds: float) -> dict[str, float]:
        data = sorted(self._values)
        if not data:
            result = {"avg": 0.0, "min": 0.0, "med": 0.0, "max": 0.0}
        else:
            result = {
                "avg": sum(data) / len(data),
                "min": data[0],
                "med": percentile(data, 50),
                "max": data[-1],
            }
        for pct in sorted(set(TREND_PERCENTILES) | self.extra_percentiles):
            result[format_percentile_key(pct)] = percentile(data, pct)
        return result


_METRIC_CLASSES: dict[MetricType, type[Metric]] = {
    MetricType.COUNTER: Counter,
    MetricType.GAUGE: Gauge,
    MetricType.RATE: Rate,
    MetricType.TREND: Trend,
}


class MetricsRegistry:
    """Named metrics for one run, including tagged sub-metrics."""

    def __init__(self):
        self._metrics: dict[str, Metric] = {}

    def get_or_create(self, name: str, metric_type: MetricType, contains: Optional[str] = None) -> Metric:
        metric = self._metrics.get(name)
        if metric is None:
            metric = _METRIC_CLASSES[metric_type](name, contains)
            self._metrics[name] = metric
        elif metric.type != metric_type:
            raise ValueError(
                f"Metric {name} already registered as {metric.type.value}, not {metric_type.value}"
            )
        return metric

    def counter(self, name: str) -> Counter:
        return self.get_or_create(name, MetricType.COUNTER)

    def gauge(self, name: str) -> Gauge:
        return self.get_or_create(name, MetricType.GAUGE)

    def rate(self, name: str) -> Rate:
        return self.get_or_create(name, MetricType.RATE)

    def trend(self, name: str, time: bool = False) -> Trend:
        return self.get_or_create(name, MetricType.TREND, "time" if time else None)

    def add(
        self,
        name: str,
        metric_type: MetricType,
        value: float,
        tags: Optional[dict[str, str]] = None,
        contains: Optional[str] = None,
    ) -> None:
        """Record a value on a metric and on each of its tag sub-metrics."""
        self.get_or_create(name, metric_type, contains).add(value)
        for key, tag_value in (tags or {}).items():
            sub_name = f"{name}{{{key}:{tag_value}}}"
            self.get_or_create(sub_name, metric_type, contains).add(value)

    def get(self, name: str) -> Optional[Metric]:
        return self._metrics.get(name)

    def snapshot(self, duration_seconds: float) -> MetricsReport:
        """Freeze every metric into a report."""
        return MetricsReport(
            state=RunState(test_run_duration_ms=duration_seconds * 1000),
            metrics={
                name: metric.snapshot(duration_seconds)
                for name, metric in sorted(self._metrics.items())
            },
        )
