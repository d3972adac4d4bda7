"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest

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

calculations = Counter(
    'freight_calculations_total',
    'Freight calculations by endpoint and outcome',
    ['endpoint', 'outcome'],
    registry=registry
)

route_resolutions = Counter(
    'route_resolutions_total',
    'Route distance resolutions by outcome',
    ['outcome'],
    registry=registry
)

route_duration = Histogram(
    'route_resolution_duration_seconds',
    'Route provider round trip in seconds',
    ['outcome'],
    registry=registry
)

cache_hits = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache'],
    registry=registry
)

cache_misses = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache'],
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)

rate_table_entries = Gauge(
    'antt_rate_table_entries',
    'Number of (cargo type, axles) rates loaded across all tables',
    registry=registry
)


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    return generate_latest(registry).decode('utf-8')
