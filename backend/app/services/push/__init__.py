"""
APNs push notification transport.

This package contains:
- APNSConnection - long-lived HTTP/2 connection to APNs
- APNSFeedback - batches invalid device tokens for pruning
- APNSTransport - owns both singletons and wires their listeners
- push_notification - fire-and-forget dispatch over the shared connection
"""

from app.services.push.connection import APNSConnection
from app.services.push.emitter import EventEmitter
from app.services.push.events import (
    Completed,
    Connected,
    FeedbackConnectionError,
    FeedbackProtocolError,
    FeedbackReceived,
    Timeout,
    TransmissionError,
    Transmitted,
)
from app.services.push.feedback import APNSFeedback
from app.services.push.models import (
    APNSConfig,
    Device,
    FeedbackRecord,
    Notification,
)
from app.services.push.transport import (
    APNSTransport,
    connect,
    get_apns_transport,
    push_notification,
    shutdown_apns_transport,
)

__all__ = [
    # Transport
    "APNSTransport",
    "connect",
    "get_apns_transport",
    "push_notification",
    "shutdown_apns_transport",
    # Channels
    "APNSConnection",
    "APNSFeedback",
    "EventEmitter",
    # Values
    "APNSConfig",
    "Device",
    "FeedbackRecord",
    "Notification",
    # Events
    "Connected",
    "Completed",
    "Timeout",
    "Transmitted",
    "TransmissionError",
    "FeedbackConnectionError",
    "FeedbackProtocolError",
    "FeedbackReceived",
]
