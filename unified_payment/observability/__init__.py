"""
Observability module - Logging and Metrics.
"""

from unified_payment.observability.logging import get_logger, log_context, setup_logging
from unified_payment.observability.metrics import metrics, track_operation

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "track_operation",
]
