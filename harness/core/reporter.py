"""End-of-run summary reporting."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from common.models.metrics import CustomMetrics, LatencyStats, MetricsReport, SummaryDocument
from common.utils import ensure_dir
from harness.core.classifier import REAL_ERRORS

logger = logging.getLogger(__name__)


PANEL_TEMPLATE = """
╔══════════════════════════════════════╗
║           RPS RESULTS                ║
╠══════════════════════════════════════╣
║ Average RPS: {avg_rps:>8} req/s      ║
║ Total Requests: {total:>13}      ║
║ Duration: {duration:>8}s           ║
╚══════════════════════════════════════╝
        """


def average_rps(total_requests: float, duration_seconds: float) -> int:
    """Requests per second over the whole run, rounded half up."""
    if duration_seconds <= 0:
        return 0
    return int(total_requests / duration_seconds + 0.5)


class SummaryReporter:
    """Turn the final metrics into a text panel and a JSON document."""

    def __init__(self, summary_path: Optional[str] = "summary.json"):
        self.summary_path = summary_path

    def build(self, report: MetricsReport, thresholds_passed: bool = True) -> SummaryDocument:
        """Compute derived figures from the final metrics."""
        total_requests = int(report.value("http_reqs", "count", 0))
        duration = report.duration_seconds
        avg_rps = average_rps(total_requests, duration)

        error_rate = report.value(REAL_ERRORS, "rate") or 0.0
        http_duration = report.metrics.get("http_req_duration")
        latency = LatencyStats.from_values(http_duration.values) if http_duration else LatencyStats()

        document = SummaryDocument(
            report=report,
            custom_metrics=CustomMetrics(
                avg_rps=avg_rps,
                total_requests=total_requests,
                duration_seconds=duration,
            ),
            latency_ms=latency,
            max_rps=int(round(report.value("http_reqs", "rate", 0))),
            error_rate_percent=error_rate * 100,
            thresholds_passed=thresholds_passed,
        )
        document.text = self.render_text(document)
        return document

    def render_text(self, document: SummaryDocument) -> str:
        """The fixed-width RPS panel printed to stdout."""
        custom = document.custom_metrics
        return PANEL_TEMPLATE.format(
            avg_rps=custom.avg_rps,
            total=custom.total_requests,
            duration=f"{custom.duration_seconds:.1f}",
        )

    def render_json(self, document: SummaryDocument) -> str:
        return json.dumps(document.to_json(), indent=2)

    def log_summary(self, document: SummaryDocument) -> None:
        custom = document.custom_metrics
        logger.info("=== PERFORMANCE SUMMARY ===")
        logger.info(f"Total Requests: {custom.total_requests}")
        logger.info(f"Test Duration: {custom.duration_seconds:.1f}s")
        logger.info(f"Average RPS: {custom.avg_rps}")
        logger.info(f"Max RPS: {document.max_rps}")
        logger.info(f"P95 Response Time: {document.latency_ms.p95}ms")
        logger.info(f"P99 Response Time: {document.latency_ms.p99}ms")
        logger.info(f"Error Rate: {document.error_rate_percent:.2f}%")

    def write(self, document: SummaryDocument, path: Optional[str | Path] = None) -> Optional[Path]:
        """Write the JSON summary. Returns the path written, if any."""
        target = path or self.summary_path
        if not target:
            return None
        written = Path(target)
        ensure_dir(written.parent)
        written.write_text(self.render_json(document))
        logger.info(f"Summary written to {written}")
        return written
