"""
Prometheus metrics for the relay API.

Everything is registered under the `filerelay` namespace in the default
registry, which /metrics exposes.
"""
from prometheus_client import Counter, Gauge, Histogram

NAMESPACE = "filerelay"

# Provider calls are slower than local request handling
PROVIDER_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'HTTP requests by route template and status',
    ['method', 'path', 'status'],
    namespace=NAMESPACE,
)
http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    namespace=NAMESPACE,
)
http_requests_in_progress = Gauge(
    'http_requests_in_progress',
    'Requests currently being handled',
    namespace=NAMESPACE,
)
errors_total = Counter(
    'errors_total',
    'Error responses by class (4xx, 5xx) and unhandled exceptions',
    ['error_type'],
    namespace=NAMESPACE,
)

# Files
uploads_total = Counter('uploads_total', 'Files stored', namespace=NAMESPACE)
upload_bytes_total = Counter('upload_bytes_total', 'Bytes stored', namespace=NAMESPACE)

# Auth
auth_attempts_total = Counter(
    'auth_attempts_total',
    'Signup, login and token verification attempts',
    ['action', 'outcome'],
    namespace=NAMESPACE,
)

# Payments
checkout_sessions_created_total = Counter(
    'checkout_sessions_created_total',
    'Checkout sessions created',
    namespace=NAMESPACE,
)
webhook_events_total = Counter(
    'webhook_events_total',
    'Payment webhook events received, by canonical kind',
    ['kind'],
    namespace=NAMESPACE,
)

# Providers (supabase-auth, supabase-storage, stripe)
provider_failures_total = Counter(
    'provider_failures_total',
    'Failed external provider calls',
    ['provider', 'operation'],
    namespace=NAMESPACE,
)
provider_latency_seconds = Histogram(
    'provider_latency_seconds',
    'External provider call latency in seconds',
    ['provider', 'operation'],
    buckets=PROVIDER_BUCKETS,
    namespace=NAMESPACE,
)
