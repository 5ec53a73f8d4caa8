"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation write path
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation attempts',
    ['outcome']  # success, conflict, rejected, error
)

reservation_write_latency = Histogram(
    'reservation_write_latency_seconds',
    'Latency of transactional reservation writes',
    ['operation'],  # reserve, change_status, reschedule, cancel, reprice, payment
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

status_transitions = Counter(
    'reservation_status_transitions_total',
    'Applied reservation status transitions',
    ['to_status']
)

conflict_checks = Counter(
    'reservation_conflict_checks_total',
    'Conflict checks by mode and result',
    ['mode', 'result']  # mode: read, locking; result: clear, conflict
)

storage_timeouts = Counter(
    'reservation_storage_timeouts_total',
    'Lock-wait or statement timeouts surfaced to callers'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

# HTTP surface
http_request_duration = Histogram(
    'http_request_duration_seconds',
    'Request latency by route template',
    ['method', 'route', 'status_class'],  # status_class: 2xx, 4xx, 5xx
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(outcome: str):
    """Record reservation attempt. Outcome: success, conflict, rejected, error"""
    reservation_attempts.labels(outcome=outcome).inc()


def record_status_transition(to_status: str):
    status_transitions.labels(to_status=to_status).inc()


def record_conflict_check(mode: str, conflict: bool):
    conflict_checks.labels(mode=mode, result="conflict" if conflict else "clear").inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
