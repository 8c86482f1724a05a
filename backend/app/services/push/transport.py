"""
APNs transport facade.

Owns the process-wide APNs connection and feedback channel, wires their
listeners exactly once, and dispatches notifications over the shared
connection.

Usage:
    transport = get_apns_transport()
    connection = transport.connect()          # idempotent
    push_notification(connection, tokens, "Hello", {"id": 1})
"""

import logging
import time
from typing import Any, Callable, Optional, Sequence

from app.services.push.connection import APNSConnection
from app.services.push.constants import (
    DEFAULT_BADGE,
    DEFAULT_FEEDBACK_INTERVAL_SECONDS,
    DEFAULT_NOTIFICATION_TTL_SECONDS,
    DEFAULT_SOUND,
)
from app.services.push.feedback import APNSFeedback
from app.services.push.listeners import (
    PruneDevices,
    bind_connection_listeners,
    bind_feedback_listeners,
)
from app.services.push.models import APNSConfig, Device, Notification

logger = logging.getLogger(__name__)

DispatchCallback = Callable[[Optional[Exception]], None]


class APNSTransport:
    """
    Application context holding the APNs connection and feedback singletons.

    ``connect()`` builds both on first use and returns the same connection
    on every later call, without binding listeners again.

    Attributes:
        config: APNS configuration
        feedback_interval: Seconds between feedback batches
    """

    def __init__(
        self,
        config: APNSConfig,
        prune_devices: PruneDevices,
        connection_factory: Callable[..., Any] = APNSConnection,
        feedback_factory: Callable[..., Any] = APNSFeedback,
        feedback_interval: float = DEFAULT_FEEDBACK_INTERVAL_SECONDS,
    ):
        self.config = config
        self.feedback_interval = feedback_interval
        self._prune_devices = prune_devices
        self._connection_factory = connection_factory
        self._feedback_factory = feedback_factory

        self._connection: Optional[Any] = None
        self._feedback: Optional[Any] = None

    @property
    def connection(self) -> Optional[Any]:
        return self._connection

    @property
    def feedback(self) -> Optional[Any]:
        return self._feedback

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def connect(self) -> Any:
        """
        Return the APNs connection, creating and wiring it on first call.

        Construction errors propagate to the caller.
        """
        if self._connection is not None:
            return self._connection

        feedback = self._feedback_factory(interval=self.feedback_interval)
        connection = self._connection_factory(self.config, feedback=feedback)

        bind_connection_listeners(connection)
        bind_feedback_listeners(feedback, self._prune_devices)

        self._feedback = feedback
        self._connection = connection

        logger.info(
            "APNS transport connected",
            extra={"bundle_id": self.config.bundle_id, "sandbox": self.config.use_sandbox},
        )
        return connection

    async def start(self) -> Any:
        """Connect and start feedback polling on the running loop."""
        connection = self.connect()
        self._feedback.start()
        return connection

    async def close(self) -> None:
        """Flush feedback and close the connection."""
        if self._feedback is not None:
            await self._feedback.stop()
        if self._connection is not None:
            await self._connection.close()
        logger.debug("APNS transport closed")


def push_notification(
    connection: Any,
    device_tokens: Sequence[str],
    alert: str,
    data: Any,
    callback: Optional[DispatchCallback] = None,
    *,
    badge: Optional[int] = DEFAULT_BADGE,
    sound: Optional[str] = DEFAULT_SOUND,
    ttl: int = DEFAULT_NOTIFICATION_TTL_SECONDS,
) -> int:
    """
    Submit one notification per device token over an open connection.

    Every token is validated before the first submission, so a malformed
    token means nothing was sent.

    Submissions are fire-and-forget: the callback reports that every
    notification was handed to the connection, not that it was delivered.
    Delivery outcomes only show up as connection events.

    Args:
        connection: Connection returned by ``connect()``
        device_tokens: Recipient tokens, submitted in order
        alert: Alert text
        data: Custom payload
        callback: Called once with None after all submissions, or with the
            error that rejected the token list
        badge: Badge number for every notification
        sound: Sound name for every notification
        ttl: Seconds APNs should keep trying to deliver

    Returns:
        Number of notifications submitted

    Raises:
        ValueError: If a token is malformed and no callback was given
    """
    try:
        devices = [Device(token) for token in device_tokens]
    except ValueError as e:
        logger.error(
            f"APN dispatch rejected: {e}",
            extra={"requested": len(device_tokens)},
        )
        if callback is None:
            raise
        callback(e)
        return 0

    for device in devices:
        notification = Notification(
            expiry=int(time.time()) + ttl,
            alert=alert,
            payload=data,
            badge=badge,
            sound=sound,
        )
        connection.push_notification(notification, device)

    logger.debug(
        "APN notifications submitted",
        extra={"submitted": len(devices)},
    )
    if callback is not None:
        callback(None)
    return len(devices)


# Global transport instance
_apns_transport: Optional[APNSTransport] = None


def get_apns_transport() -> APNSTransport:
    """
    Get the global APNs transport built from settings.

    Raises:
        RuntimeError: If APNS is not configured
    """
    global _apns_transport
    if _apns_transport is None:
        from app.core.config import settings
        from app.services.device_service import prune_apn_devices

        if not settings.apns_ready:
            raise RuntimeError("APNS is not configured")

        config = APNSConfig(
            key_file=settings.APNS_KEY_FILE,
            key_id=settings.APNS_KEY_ID,
            team_id=settings.APNS_TEAM_ID,
            bundle_id=settings.APNS_BUNDLE_ID,
            use_sandbox=settings.APNS_USE_SANDBOX,
        )
        _apns_transport = APNSTransport(
            config,
            prune_devices=prune_apn_devices,
            feedback_interval=settings.APNS_FEEDBACK_INTERVAL_SECONDS,
        )
    return _apns_transport


def connect() -> Any:
    """Return the process-wide APNs connection."""
    return get_apns_transport().connect()


async def shutdown_apns_transport() -> None:
    """Close the global transport on app shutdown."""
    global _apns_transport
    if _apns_transport:
        await _apns_transport.close()
        _apns_transport = None
