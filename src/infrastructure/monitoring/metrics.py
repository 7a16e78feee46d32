"""
Prometheus metrics for system monitoring.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)

registry = CollectorRegistry()
prometheus_multiproc_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")

if prometheus_multiproc_dir:
    try:
        os.makedirs(prometheus_multiproc_dir, exist_ok=True)
        if os.access(prometheus_multiproc_dir, os.W_OK):
            multiprocess.MultiProcessCollector(registry)
        else:
            print(
                f"Warning: PROMETHEUS_MULTIPROC_DIR is not writable: {prometheus_multiproc_dir}"
            )
            registry = CollectorRegistry()
    except Exception as e:
        print(f"Warning: Failed to setup multiprocess collector: {e}")
        registry = CollectorRegistry()


def get_registry():
    """Get the current registry."""
    return registry


class DummyMetric:
    """Stand-in used when a metric cannot be registered."""

    def __init__(self, *args, **kwargs):
        pass

    def labels(self, *args, **kwargs):
        return self

    def set(self, value):
        pass

    def inc(self, amount=1):
        pass

    def observe(self, value):
        pass


def _get_metric(metric_class, *args, **kwargs):
    """Create a metric on the registry, falling back to a no-op metric."""
    try:
        return metric_class(*args, **kwargs, registry=get_registry())
    except Exception as e:
        print(f"Warning: Failed to create metric {metric_class.__name__}: {e}")
        return DummyMetric()


DISPATCH_ROUNDS = _get_metric(
    Counter,
    "dispatch_rounds_total",
    "Total number of dispatch rounds by outcome",
    ["outcome"],
)

DISPATCH_CANDIDATES = _get_metric(
    Histogram,
    "dispatch_candidates",
    "Eligible candidates per dispatch round",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

ASSIGNMENT_ACTIONS = _get_metric(
    Counter,
    "assignment_actions_total",
    "Total number of assignment actions",
    ["action", "outcome"],
)

ACCEPTANCE_RESPONSE_TIME = _get_metric(
    Histogram,
    "acceptance_response_time_seconds",
    "Time between intervention creation and acceptance",
    buckets=[30, 60, 120, 300, 600, 1800, 3600],
)

DISPATCH_TIMEOUTS = _get_metric(
    Counter,
    "dispatch_offer_timeouts_total",
    "Total number of offers that expired without an answer",
)

NOTIFICATION_FAILURES = _get_metric(
    Counter,
    "notification_failures_total",
    "Total number of failed technician notifications",
    ["sender", "kind"],
)

API_REQUESTS = _get_metric(
    Counter,
    "api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status_code"],
)

API_REQUEST_DURATION = _get_metric(
    Histogram,
    "api_request_duration_seconds",
    "Time spent processing API requests",
    ["method", "endpoint"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

ERRORS_TOTAL = _get_metric(
    Counter,
    "errors_total",
    "Total number of errors",
    ["error_type", "component"],
)


def record_dispatch_round(outcome: str, eligible_candidates: int):
    """Record a dispatch round and its candidate pool size."""
    DISPATCH_ROUNDS.labels(outcome=outcome).inc()
    DISPATCH_CANDIDATES.observe(eligible_candidates)


def record_assignment_action(action: str, success: bool):
    """Record an assignment action outcome."""
    ASSIGNMENT_ACTIONS.labels(
        action=action, outcome="success" if success else "rejected"
    ).inc()


def record_acceptance(response_time_seconds: int):
    """Record how long an intervention waited for a technician."""
    ACCEPTANCE_RESPONSE_TIME.observe(response_time_seconds)


def record_offer_timeouts(count: int):
    """Record expired offers."""
    if count:
        DISPATCH_TIMEOUTS.inc(count)


def record_notification_failure(sender: str, kind: str):
    """Record a notification that could not be delivered."""
    NOTIFICATION_FAILURES.labels(sender=sender, kind=kind).inc()


def record_api_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record API request count and latency."""
    API_REQUESTS.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
    API_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def record_error(error_type: str, component: str):
    """Record error metric."""
    ERRORS_TOTAL.labels(error_type=error_type, component=component).inc()


def get_metrics():
    """Get all metrics in Prometheus format."""
    return generate_latest(registry)


def get_metrics_content_type():
    """Get the content type for metrics."""
    return CONTENT_TYPE_LATEST
