"""
Listener bindings for APNs connection and feedback events.

Handlers only log and forward. Transmissions from unrelated dispatch
calls interleave on the same connection, so nothing here keeps state.
"""

import logging
from functools import partial
from typing import Any, Callable, List

from app.services.push.constants import APNS_ERROR_CODES
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
from app.services.push.models import FeedbackRecord

logger = logging.getLogger(__name__)

PruneDevices = Callable[[List[FeedbackRecord]], Any]


def handle_connection_event(connection: Any, event: Any) -> None:
    """React to one event published by the APNs connection."""
    if isinstance(event, Connected):
        logger.info(f"APN connected openSockets[{event.socket_id}]")

    elif isinstance(event, Completed):
        logger.info("APN completed")
        connection.shutdown()

    elif isinstance(event, Timeout):
        logger.info("APN timeout")

    elif isinstance(event, Transmitted):
        logger.info(
            f"APN transmitted device[{event.device}] "
            f"compiledPayload[{event.notification.compiled_payload}]"
        )

    elif isinstance(event, TransmissionError):
        logger.error(
            f"APN transmissionError errorCode[{event.error_code}] "
            f"device[{event.device}] notification[{event.notification}]",
            extra={"description": APNS_ERROR_CODES.get(str(event.error_code), "")},
        )

    else:
        logger.debug(f"Ignoring unknown APN connection event: {event!r}")


def handle_feedback_event(prune_devices: PruneDevices, event: Any) -> None:
    """React to one event published by the feedback channel."""
    if isinstance(event, FeedbackConnectionError):
        logger.error(f"Feedback conn error: {event.error}")

    elif isinstance(event, FeedbackProtocolError):
        logger.error(f"Feedback error: {event.error}")

    elif isinstance(event, FeedbackReceived):
        logger.info(f"Remove {len(event.records)} devices")
        prune_devices(event.records)

    else:
        logger.debug(f"Ignoring unknown feedback event: {event!r}")


def bind_connection_listeners(connection: EventEmitter) -> None:
    """Attach the connection handlers. Call once per connection."""
    connection.subscribe(partial(handle_connection_event, connection))


def bind_feedback_listeners(feedback: EventEmitter, prune_devices: PruneDevices) -> None:
    """Attach the feedback handlers. Call once per feedback channel."""
    feedback.subscribe(partial(handle_feedback_event, prune_devices))
