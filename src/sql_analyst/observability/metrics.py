"""
Prometheus Metrics
==================

Agent metrics for monitoring and alerting.
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Create a custom registry for this application
REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "sql_analyst",
    "SQL analyst application information",
    registry=REGISTRY,
)

RUNS_TOTAL = Counter(
    "sql_analyst_runs_total",
    "Total number of conversations run, by termination reason",
    ["termination"],
    registry=REGISTRY,
)

RUN_STEPS = Histogram(
    "sql_analyst_run_steps",
    "Number of model turns per conversation",
    buckets=[1, 2, 5, 10, 20, 50, 100],
    registry=REGISTRY,
)

ACTIVE_RUNS = Gauge(
    "sql_analyst_active_runs",
    "Number of conversations currently running",
    registry=REGISTRY,
)

TOOL_CALLS_TOTAL = Counter(
    "sql_analyst_tool_calls_total",
    "Tool invocations by tool and outcome",
    ["tool", "status"],  # ok, error, rejected
    registry=REGISTRY,
)

CACHE_LOOKUPS_TOTAL = Counter(
    "sql_analyst_cache_lookups_total",
    "Result cache lookups",
    ["result"],  # hit, miss
    registry=REGISTRY,
)

REPAIR_ATTEMPTS_TOTAL = Counter(
    "sql_analyst_repair_attempts_total",
    "Repair engine invocations by outcome",
    ["outcome"],  # proposed, declined
    registry=REGISTRY,
)

QUERY_DURATION = Histogram(
    "sql_analyst_query_duration_seconds",
    "Database execution duration in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


def set_app_info(version: str, environment: str) -> None:
    """Publish version and environment as an info metric."""
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })


def track_run_metrics(termination: str, steps: int) -> None:
    """
    Track metrics for a completed conversation.

    Args:
        termination: Termination reason value
        steps: Number of steps the run produced
    """
    RUNS_TOTAL.labels(termination=termination).inc()
    RUN_STEPS.observe(steps)


def latest_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(REGISTRY)


def timed_operation(metric: Histogram):
    """
    Decorator to time operations and record to histogram.

    Args:
        metric: Prometheus Histogram to record to
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start_time
                metric.observe(duration)
        return wrapper
    return decorator
