"""
Prometheus metrics module for tutorbook.

Service timings come from the @measure_operation decorator; the completion
sweep and the ledger record their own counters.
"""

import logging
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "tutorbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "tutorbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "tutorbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

sessions_completed_total = Counter(
    "tutorbook_sessions_completed_total",
    "Sessions transitioned from SCHEDULED to COMPLETED by the completion sweep",
    registry=REGISTRY,
)

session_completion_failures_total = Counter(
    "tutorbook_session_completion_failures_total",
    "Per-session completion units that failed and were rolled back",
    registry=REGISTRY,
)

ledger_consumptions_total = Counter(
    "tutorbook_ledger_consumptions_total",
    "SESSION_CONSUME ledger upserts by outcome",
    ["outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers never touch metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SessionService')
            operation: Operation/method name (e.g., 'create_session')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_sessions_completed(count: int = 1) -> None:
        if count > 0:
            sessions_completed_total.inc(count)

    @staticmethod
    def inc_session_completion_failure() -> None:
        session_completion_failures_total.inc()

    @staticmethod
    def inc_ledger_consumption(outcome: str) -> None:
        """outcome is 'inserted' or 'existing'."""
        ledger_consumptions_total.labels(outcome=outcome).inc()

    @staticmethod
    def start_server(port: int, addr: str = "0.0.0.0") -> None:
        """Serve REGISTRY for scraping from a background thread."""
        start_http_server(port, addr=addr, registry=REGISTRY)
        logger.info(f"Serving Prometheus metrics on {addr}:{port}")


prometheus_metrics = PrometheusMetrics()
