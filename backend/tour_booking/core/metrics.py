"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'tour_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, no_seats, not_published, not_found
)

booking_cancellations = Counter(
    'tour_booking_cancellations_total',
    'Bookings cancelled, labelled by who cancelled',
    ['actor']  # owner, admin
)

seats_restored = Counter(
    'tour_booking_seats_restored_total',
    'Seats returned to trip inventory by cancellations'
)

# Cache metrics
cache_operations = Counter(
    'tour_booking_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# HTTP metrics
http_request_duration = Histogram(
    'tour_booking_http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'route', 'status']
)

# Side effects
audit_failures = Counter(
    'tour_booking_audit_failures_total',
    'Audit log writes that failed and were dropped'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, no_seats, not_published, not_found"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(is_admin: bool, seats: int):
    booking_cancellations.labels(actor="admin" if is_admin else "owner").inc()
    seats_restored.inc(seats)


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def observe_request(method: str, route: str, status_code: int, seconds: float):
    http_request_duration.labels(method=method, route=route, status=str(status_code)).observe(seconds)
