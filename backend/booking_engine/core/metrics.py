"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking ledger operations',
    ['operation', 'outcome']  # create/cancel/payment/status, ok or error code
)

request_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Capacity counter metrics
counter_mutations = Counter(
    'occupancy_counter_mutations_total',
    'Occupancy counter calls by audit action',
    ['action']  # increment, decrement, sync, validation
)

lock_contention = Counter(
    'offering_lock_timeouts_total',
    'Offering lock acquisitions that timed out',
    ['layer']  # process, database
)

# Reconciliation metrics
reconciliation_runs = Counter(
    'reconciliation_runs_total',
    'Reconciliation passes',
    ['mode']  # single, sweep
)

reconciliation_fixes = Counter(
    'reconciliation_fixes_total',
    'Offerings whose occupancy drifted and was corrected'
)

reconciliation_skips = Counter(
    'reconciliation_skips_total',
    'Offerings skipped during a sweep',
    ['reason']  # not_found, busy
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(operation: str, outcome: str):
    """Record ledger operation. Outcome: ok or an error code."""
    booking_attempts.labels(operation=operation, outcome=outcome).inc()


def record_counter_mutation(action: str):
    counter_mutations.labels(action=action).inc()


def record_lock_timeout(layer: str):
    lock_contention.labels(layer=layer).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
