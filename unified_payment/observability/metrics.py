"""
Metrics Collection with Prometheus.

Counts and times every plugin operation per provider so a dashboard can show
which network is slow or failing without the caller instrumenting anything.
"""

import time
from enum import Enum

from prometheus_client import Counter, Histogram

from unified_payment.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    PROVIDER = "provider"
    OPERATION = "operation"
    OUTCOME = "outcome"
    SUCCESS = "success"


class PaymentMetrics:
    """
    Centralized metrics for payment plugins.

    - Operations (rate by outcome, duration)
    - Webhooks (rate by normalized success)
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""
        self.operations_total = Counter(
            "payment_operations_total",
            "Total plugin operations",
            [MetricLabels.PROVIDER, MetricLabels.OPERATION, MetricLabels.OUTCOME],
        )

        self.operation_duration_seconds = Histogram(
            "payment_operation_duration_seconds",
            "Plugin operation duration in seconds",
            [MetricLabels.PROVIDER, MetricLabels.OPERATION],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.webhooks_total = Counter(
            "payment_webhooks_total",
            "Total webhook payloads normalized",
            [MetricLabels.PROVIDER, MetricLabels.SUCCESS],
        )

    def record_operation(
        self, provider: str, operation: str, outcome: str, duration: float
    ) -> None:
        """Record one plugin operation."""
        if not settings.metrics_enabled:
            return
        self.operations_total.labels(
            provider=provider, operation=operation, outcome=outcome
        ).inc()
        self.operation_duration_seconds.labels(provider=provider, operation=operation).observe(
            duration
        )

    def record_webhook(self, provider: str, success: bool) -> None:
        """Record one normalized webhook."""
        if not settings.metrics_enabled:
            return
        self.webhooks_total.labels(provider=provider, success=str(success)).inc()


# Global metrics instance
metrics = PaymentMetrics()


class track_operation:
    """
    Context manager for tracking plugin operations.

    Usage:
        with track_operation("flooz", "confirm_payment") as tracker:
            result = await self._confirm_payment(...)
            tracker.set_outcome(result.status.value)

    Exceptions are recorded with the exception class name as outcome.
    """

    def __init__(self, provider: str, operation: str) -> None:
        self.provider = provider
        self.operation = operation
        self.outcome = "ok"
        self.start_time: float = 0.0

    def set_outcome(self, outcome: str) -> None:
        """Set the operation outcome label."""
        self.outcome = outcome

    def __enter__(self) -> "track_operation":
        """Start tracking."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: type | None, exc_val: object, exc_tb: object) -> None:
        """Record metrics."""
        duration = time.perf_counter() - self.start_time
        if exc_type is not None:
            self.outcome = exc_type.__name__
        metrics.record_operation(self.provider, self.operation, self.outcome, duration)
