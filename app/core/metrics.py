"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

quotes_computed = Counter(
    'quotes_computed_total',
    'Total fare quotes computed',
    ['vehicle_class'],
    registry=registry
)

route_cache_hits = Counter(
    'route_cache_hits_total',
    'Total route distance cache hits',
    registry=registry
)

route_cache_misses = Counter(
    'route_cache_misses_total',
    'Total route distance cache misses',
    registry=registry
)

collaborator_duration = Histogram(
    'collaborator_call_duration_seconds',
    'External collaborator call duration in seconds',
    ['collaborator', 'operation', 'status'],
    registry=registry
)

payment_attempts = Counter(
    'payment_attempts_total',
    'Total payment attempts by outcome',
    ['outcome'],
    registry=registry
)

bookings_registered = Counter(
    'bookings_registered_total',
    'Total bookings registered',
    ['status'],
    registry=registry
)

bookings_cancelled = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled',
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    registry=registry
)

webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Total webhook delivery attempts',
    ['status'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)


def track_collaborator(collaborator: str, operation: str):
    """Decorator to time calls to an external collaborator"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                collaborator_duration.labels(
                    collaborator=collaborator,
                    operation=operation,
                    status='success'
                ).observe(time.time() - start_time)
                return result
            except Exception:
                collaborator_duration.labels(
                    collaborator=collaborator,
                    operation=operation,
                    status='error'
                ).observe(time.time() - start_time)
                raise
        return wrapper
    return decorator


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
