"""
Observability Module
====================

Structured logging and Prometheus metrics.
"""

from sql_analyst.observability.logging_config import get_logger, log_context, setup_logging
from sql_analyst.observability.metrics import latest_metrics, track_run_metrics

__all__ = [
    "setup_logging",
    "get_logger",
    "log_context",
    "track_run_metrics",
    "latest_metrics",
]
