"""
HTTP metrics middleware.

Paths carrying opaque ids are collapsed into templates (for example
/api/payment/verify/{session_id}) so ids never become label values.
"""
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from filerelay.utils.metrics import (
    errors_total,
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

UNMATCHED_PATH = "unmatched"

PATH_TEMPLATES = (
    (re.compile(r"^/api/payment/verify/[^/]+$"), "/api/payment/verify/{session_id}"),
)


def normalize_path(path: str, status_code: int) -> str:
    """Label for a request path; unknown paths share one label."""
    for pattern, template in PATH_TEMPLATES:
        if pattern.match(path):
            return template
    if status_code == 404:
        return UNMATCHED_PATH
    return path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count and time every request except scrapes of /metrics."""
    
    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)
        
        start_time = time.perf_counter()
        http_requests_in_progress.inc()
        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise
        finally:
            http_requests_in_progress.dec()
        
        path = normalize_path(request.url.path, response.status_code)
        http_requests_total.labels(
            method=request.method, path=path, status=response.status_code
        ).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(
            time.perf_counter() - start_time
        )
        if response.status_code >= 400:
            errors_total.labels(error_type=f"{response.status_code // 100}xx").inc()
        
        return response
