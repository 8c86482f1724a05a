"""
Request logging middleware

Gives every request a correlation ID (reusing an inbound X-Request-ID when
the caller supplies one), logs start and completion with timing, and feeds
the HTTP request metrics.
"""
import time
import uuid
import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging_config import set_request_id, clear_request_id, get_request_id
from app.core.metrics import record_request_metrics

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def _incoming_request_id(request: Request) -> str:
    value = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if value and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable():
        return value
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every HTTP request with timing and a correlation ID."""

    # Probes and docs are only counted, not logged
    EXCLUDED_PATHS = {'/health', '/metrics', '/docs', '/redoc', '/openapi.json'}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _incoming_request_id(request)
        token = set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"
        should_log = path not in self.EXCLUDED_PATHS

        if should_log:
            logger.info(
                f"{method} {path} started",
                extra={
                    "event_type": "request_start",
                    "method": method,
                    "path": path,
                    "client_ip": client_host,
                }
            )

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                elapsed = time.perf_counter() - start_time
                logger.error(
                    f"{method} {path} failed: {e}",
                    extra={
                        "event_type": "request_error",
                        "method": method,
                        "path": path,
                        "response_time_ms": round(elapsed * 1000, 2),
                        "error_type": type(e).__name__,
                    },
                    exc_info=True
                )
                record_request_metrics(method, path, 500, elapsed)
                raise

            elapsed = time.perf_counter() - start_time
            response.headers[REQUEST_ID_HEADER] = request_id

            if should_log:
                if response.status_code >= 500:
                    log_level = logging.ERROR
                elif response.status_code >= 400:
                    log_level = logging.WARNING
                else:
                    log_level = logging.INFO
                logger.log(
                    log_level,
                    f"{method} {path} -> {response.status_code}",
                    extra={
                        "event_type": "request_complete",
                        "method": method,
                        "path": path,
                        "status_code": response.status_code,
                        "response_time_ms": round(elapsed * 1000, 2),
                        "client_ip": client_host,
                    }
                )

            record_request_metrics(method, path, response.status_code, elapsed)
            return response
        finally:
            clear_request_id(token)


def get_current_request_id() -> str:
    """Current request ID, or "no-request" outside a request."""
    return get_request_id() or "no-request"
