"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (e.g. across test sessions) must not raise on
# duplicate registration, so existing collectors are reused by name.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "fetch_attempts_total": Counter(
            "squrly_fetch_attempts_total",
            "HTTP fetch attempts by outcome",
            ["outcome"],
        ),
        "fetch_latency_seconds": Histogram(
            "squrly_fetch_latency_seconds",
            "Time taken by a single fetch attempt, protocol fallback included",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        ),
        "protocol_fallback_total": Counter(
            "squrly_protocol_fallback_total",
            "Secure requests re-issued over the insecure scheme",
        ),
        "retries_scheduled_total": Counter(
            "squrly_retries_scheduled_total",
            "One-shot retries armed after a failed first attempt",
        ),
        "pending_retries": Gauge(
            "squrly_pending_retries",
            "Retries armed or executing but not yet resolved",
        ),
        "queue_depth": Gauge(
            "squrly_queue_depth",
            "Tasks waiting in the rate-limited queue",
        ),
        "records_emitted_total": Counter(
            "squrly_records_emitted_total",
            "Output records emitted by result",
            ["result"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP."""
    start_http_server(port)
    logger.info("Prometheus exporter started", port=port)
