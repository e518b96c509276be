"""Prometheus metrics for the clinicpay service.

Metrics are organized into two categories:

Business Metrics (for Clinic Operations/Finance):
- clinicpay_plan_status_transitions_total: Plan status changes by from/to
- clinicpay_plan_operations_total: Pause/resume/cancel/reschedule by outcome
- clinicpay_installment_events_total: Payments, refunds and overdue marks

Technical Metrics (for Engineering/SRE):
- clinicpay_status_recompute_latency_seconds: Plan status recompute latency
- clinicpay_status_sweep_latency_seconds: External sweep trigger latency
- clinicpay_status_sweep_failures_total: External sweep trigger failures
- clinicpay_status_sweep_retry_total: External sweep trigger retries
- clinicpay_concurrent_update_conflicts_total: Optimistic version conflicts
- clinicpay_http_requests_total: HTTP requests by endpoint/status
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, REGISTRY, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST


# =============================================================================
# Business Metrics (Clinic Operations/Finance dashboards)
# =============================================================================

plan_status_transitions = Counter(
    "clinicpay_plan_status_transitions_total",
    "Plan status changes written by recomputation or manual operations",
    ["from_status", "to_status"],
)

plan_operations = Counter(
    "clinicpay_plan_operations_total",
    "Manual plan operations by outcome",
    ["operation", "outcome"],  # pause/resume/cancel/reschedule, success/failure
)

installment_events = Counter(
    "clinicpay_installment_events_total",
    "Installment lifecycle events",
    ["event"],  # paid, marked_paid, refunded, overdue, rescheduled
)


# =============================================================================
# Technical Metrics (Engineering/SRE dashboards)
# =============================================================================

status_recompute_latency = Histogram(
    "clinicpay_status_recompute_latency_seconds",
    "Plan status recompute latency in seconds",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

status_sweep_latency = Histogram(
    "clinicpay_status_sweep_latency_seconds",
    "External overdue sweep trigger latency in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

status_sweep_failures = Counter(
    "clinicpay_status_sweep_failures_total",
    "Total number of overdue sweep trigger failures",
    ["error_type"],  # timeout, error
)

status_sweep_retries = Counter(
    "clinicpay_status_sweep_retry_total",
    "Total number of overdue sweep trigger retries",
)

concurrent_update_conflicts = Counter(
    "clinicpay_concurrent_update_conflicts_total",
    "Plan writes rejected because the row version changed",
)

http_requests_total = Counter(
    "clinicpay_http_requests_total",
    "Total HTTP requests by endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_latency = Histogram(
    "clinicpay_http_request_latency_seconds",
    "HTTP request latency by endpoint",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_status_transition(from_status: str, to_status: str) -> None:
    """Record a plan status change."""
    plan_status_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_plan_operation(operation: str, success: bool) -> None:
    """Record the outcome of a manual plan operation."""
    outcome = "success" if success else "failure"
    plan_operations.labels(operation=operation, outcome=outcome).inc()


def record_installment_event(event: str, count: int = 1) -> None:
    """Record installment lifecycle events."""
    if count > 0:
        installment_events.labels(event=event).inc(count)


def record_concurrent_update_conflict() -> None:
    concurrent_update_conflicts.inc()


@contextmanager
def track_status_recompute_latency() -> Generator[None, None, None]:
    """Context manager to track plan status recompute latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        status_recompute_latency.observe(time.perf_counter() - start)


@contextmanager
def track_status_sweep_latency() -> Generator[None, None, None]:
    """Context manager to track sweep trigger latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        status_sweep_latency.observe(time.perf_counter() - start)


def record_status_sweep_failure(error_type: str) -> None:
    """Record a failed sweep trigger."""
    status_sweep_failures.labels(error_type=error_type).inc()


def record_status_sweep_retry() -> None:
    """Record a sweep trigger retry attempt."""
    status_sweep_retries.inc()


def record_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record an HTTP request."""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_latency.labels(method=method, endpoint=endpoint).observe(duration)


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST
