"""Post-run pass/fail criteria over aggregated metrics."""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass

from common.models.metrics import MetricsReport, ThresholdResult
from harness.core.metrics import MetricsRegistry, Trend, format_percentile_key

logger = logging.getLogger(__name__)


_EXPRESSION = re.compile(
    r'^\s*(?P<agg>count|rate|value|avg|min|med|max|p\((?P<pct>\d+(?:\.\d+)?)\))\s*'
    r'(?P<op><=|>=|==|!=|<|>)\s*'
    r'(?P<threshold>-?\d+(?:\.\d+)?)\s*$'
)

_OPERATORS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


class ThresholdError(ValueError):
    """Raised for a threshold expression that cannot be parsed."""


@dataclass(frozen=True)
class Threshold:
    """A parsed threshold such as ``p(95)<500``."""
    source: str
    aggregation: str
    op: str
    value: float
    percentile: float | None = None

    def check(self, observed: float) -> bool:
        return _OPERATORS[self.op](observed, self.value)


def parse_threshold(expression: str) -> Threshold:
    """Parse one threshold expression."""
    match = _EXPRESSION.match(expression)
    if not match:
        raise ThresholdError(f"Invalid threshold expression: {expression!r}")

    pct = match.group("pct")
    aggregation = match.group("agg")
    if pct is not None:
        pct_value = float(pct)
        if not 0 <= pct_value <= 100:
            raise ThresholdError(f"Percentile out of range in {expression!r}")
        return Threshold(
            source=expression,
            aggregation=format_percentile_key(pct_value),
            op=match.group("op"),
            value=float(match.group("threshold")),
            percentile=pct_value,
        )

    return Threshold(
        source=expression,
        aggregation=aggregation,
        op=match.group("op"),
        value=float(match.group("threshold")),
    )


def parse_thresholds(definitions: dict[str, list[str]]) -> dict[str, list[Threshold]]:
    """Parse every expression, raising on the first malformed one."""
    return {
        metric: [parse_threshold(expr) for expr in expressions]
        for metric, expressions in definitions.items()
    }


def prepare_registry(registry: MetricsRegistry, thresholds: dict[str, list[Threshold]]) -> None:
    """Make trends compute any extra percentiles the thresholds ask for."""
    for metric_name, parsed in thresholds.items():
        metric = registry.get(metric_name)
        if not isinstance(metric, Trend):
            continue
        for threshold in parsed:
            if threshold.percentile is not None:
                metric.extra_percentiles.add(threshold.percentile)


def evaluate_thresholds(report: MetricsReport, thresholds: dict[str, list[Threshold]]) -> bool:
    """Attach threshold results to the report's metrics.

    A threshold on a metric that was never recorded fails. Returns True when
    every threshold passed.
    """
    passed = True

    for metric_name, parsed in thresholds.items():
        snapshot = report.metrics.get(metric_name)
        for threshold in parsed:
            if snapshot is None:
                logger.warning(f"Threshold {metric_name}: {threshold.source} has no data")
                ok = False
            else:
                observed = snapshot.values.get(threshold.aggregation)
                if observed is None:
                    logger.warning(
                        f"Threshold {metric_name}: {threshold.source} references "
                        f"{threshold.aggregation}, which a {snapshot.type.value} does not have"
                    )
                    ok = False
                else:
                    ok = threshold.check(observed)
                snapshot.thresholds[threshold.source] = ThresholdResult(ok=ok)

            if not ok:
                passed = False
                logger.warning(f"Threshold crossed: {metric_name} {threshold.source}")

    return passed
