"""
Prometheus Metrics Registry

Provides Prometheus-compatible metrics for:
- HTTP request counts and latencies
- APNs submissions, transmission outcomes and feedback pruning
- Email delivery through Mailgun
"""
import re
import time
import logging
from typing import Optional
from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    'app',
    'Application information',
    registry=REGISTRY
)

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status_code'],
    registry=REGISTRY
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY
)

# ============================================================================
# APNs Metrics
# ============================================================================

apns_notifications_submitted_total = Counter(
    'apns_notifications_submitted_total',
    'Notifications handed to the APNs connection',
    registry=REGISTRY
)

apns_transmissions_total = Counter(
    'apns_transmissions_total',
    'APNs transmission outcomes',
    ['status'],  # transmitted, error
    registry=REGISTRY
)

apns_transmission_duration_seconds = Histogram(
    'apns_transmission_duration_seconds',
    'APNs transmission duration in seconds',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY
)

apns_devices_pruned_total = Counter(
    'apns_devices_pruned_total',
    'Device tokens removed after feedback',
    registry=REGISTRY
)

# ============================================================================
# Email Metrics
# ============================================================================

emails_sent_total = Counter(
    'emails_sent_total',
    'Total emails handed to Mailgun',
    ['status'],  # success, failure
    registry=REGISTRY
)

# ============================================================================
# Application Uptime
# ============================================================================

_start_time: Optional[float] = None

app_uptime_seconds = Gauge(
    'app_uptime_seconds',
    'Application uptime in seconds',
    registry=REGISTRY
)

# ============================================================================
# Helper Functions
# ============================================================================


def init_metrics(version: str = "1.0.0"):
    """
    Initialize metrics with application info.

    Args:
        version: Application version string
    """
    global _start_time
    _start_time = time.time()

    app_info.info({
        'version': version,
        'name': 'notification-gateway'
    })

    logger.info("Prometheus metrics initialized", extra={"version": version})


def record_request_metrics(
    method: str,
    path: str,
    status_code: int,
    response_time_seconds: float
):
    """
    Record HTTP request metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status_code: Response status code
        response_time_seconds: Response time in seconds
    """
    normalized_path = _normalize_path(path)

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status_code=str(status_code)
    ).inc()

    http_request_duration_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(response_time_seconds)


def record_apns_submitted(count: int = 1):
    """Count notifications submitted to the connection."""
    apns_notifications_submitted_total.inc(count)


def record_apns_transmission(status: str, duration_seconds: float = 0.0):
    """
    Record the outcome of one APNs transmission.

    Args:
        status: "transmitted" or "error"
        duration_seconds: Time from submission to outcome
    """
    apns_transmissions_total.labels(status=status).inc()
    if duration_seconds > 0:
        apns_transmission_duration_seconds.observe(duration_seconds)


def record_apns_devices_pruned(count: int):
    """Count device tokens removed from storage."""
    if count > 0:
        apns_devices_pruned_total.inc(count)


def record_email_sent(status: str):
    """
    Record email delivery metrics.

    Args:
        status: Delivery status (success, failure)
    """
    emails_sent_total.labels(status=status).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format metrics
    """
    if _start_time is not None:
        app_uptime_seconds.set(time.time() - _start_time)
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def _normalize_path(path: str) -> str:
    """
    Normalize request path to avoid high cardinality.

    Replaces UUIDs, hex device tokens and numeric IDs with placeholders.

    Args:
        path: Original request path

    Returns:
        Normalized path
    """
    path = re.sub(
        r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
        '{id}',
        path,
        flags=re.IGNORECASE
    )

    path = re.sub(r'/[0-9a-f]{32,}', '/{token}', path, flags=re.IGNORECASE)

    path = re.sub(r'/\d+', '/{id}', path)

    return path
