"""
APNs (Apple Push Notification service) connection.

One long-lived HTTP/2 channel per process. Submissions are fire-and-forget:
``push_notification`` schedules the request and returns, and the outcome
is published later as an event.

Events:
- connected: Connected(socket_id) whenever a new HTTP/2 client is opened
- transmitted: Transmitted(notification, device) on HTTP 200
- transmissionError: TransmissionError(reason, notification, device) otherwise
- timeout: Timeout() when the request timed out (followed by transmissionError)
- completed: Completed() once the last in-flight transmission finished
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional, Set

import httpx
import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.metrics import record_apns_submitted, record_apns_transmission
from app.services.push.constants import (
    APNS_AUTH_ERROR_STATUS_CODES,
    APNS_DEVICE_PATH,
    APNS_PRODUCTION_HOST,
    APNS_SANDBOX_HOST,
    APNS_TOKEN_INVALID_STATUS_CODES,
    ERROR_PAYLOAD_TOO_LARGE,
    ERROR_TIMEOUT,
    JWT_ALGORITHM,
    JWT_REFRESH_MARGIN_SECONDS,
    JWT_TOKEN_LIFETIME_SECONDS,
    MAX_PAYLOAD_BYTES,
)
from app.services.push.emitter import EventEmitter
from app.services.push.events import (
    Completed,
    Connected,
    Timeout,
    TransmissionError,
    Transmitted,
)
from app.services.push.feedback import APNSFeedback
from app.services.push.models import APNSConfig, Device, Notification

logger = logging.getLogger(__name__)


class APNSConnection(EventEmitter):
    """
    Persistent connection to APNs.

    Uses HTTP/2 through httpx and token-based authentication with a JWT
    signed by the .p8 auth key. The client is opened lazily on the first
    submission and reopened after ``shutdown()``.

    Usage:
        connection = APNSConnection(config, feedback=feedback)
        connection.subscribe(handler)
        connection.push_notification(notification, Device(token))

    Attributes:
        config: APNS configuration
        feedback: Channel that receives 410 Unregistered devices
        _client: httpx AsyncClient with HTTP/2 enabled
        _pending: In-flight transmission tasks
        _closing: Scheduled closes of detached clients
    """

    def __init__(
        self,
        config: APNSConfig,
        feedback: Optional[APNSFeedback] = None,
    ):
        super().__init__()
        self.config = config
        self.feedback = feedback

        self._client: Optional[httpx.AsyncClient] = None
        self._sockets_opened = 0
        self._pending: Set[asyncio.Task] = set()
        self._closing: Set[asyncio.Task] = set()

        self._jwt_token: Optional[str] = None
        self._jwt_expires_at: float = 0
        self._private_key: Optional[ec.EllipticCurvePrivateKey] = None

        self._host = APNS_SANDBOX_HOST if config.use_sandbox else APNS_PRODUCTION_HOST
        self._base_url = f"https://{self._host}"

        logger.info(
            "APNS connection initialized",
            extra={
                "host": self._host,
                "bundle_id": config.bundle_id,
                "sandbox": config.use_sandbox,
            }
        )

    @property
    def in_flight(self) -> int:
        """Number of submissions still waiting for an outcome."""
        return len(self._pending)

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP/2 client, announcing each new socket."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                http2=True,
                base_url=self._base_url,
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
            self._sockets_opened += 1
            self.emit(Connected(socket_id=self._sockets_opened))
        return self._client

    def _load_private_key(self) -> ec.EllipticCurvePrivateKey:
        """Load private key from .p8 file."""
        if self._private_key is None:
            key_path = Path(self.config.key_file)
            if not key_path.exists():
                raise FileNotFoundError(f"APNS key file not found: {key_path}")

            private_key = serialization.load_pem_private_key(
                key_path.read_bytes(),
                password=None,
            )
            if not isinstance(private_key, ec.EllipticCurvePrivateKey):
                raise ValueError("APNS key must be an EC private key (ES256)")

            self._private_key = private_key
            logger.debug(f"Loaded APNS private key from {key_path}")

        return self._private_key

    def _generate_jwt(self) -> str:
        """
        Generate the provider authentication token.

        Signed with ES256 using the .p8 key. Cached until shortly before
        it expires.

        Returns:
            JWT string for the authorization header
        """
        now = time.time()

        if self._jwt_token and self._jwt_expires_at > now + JWT_REFRESH_MARGIN_SECONDS:
            return self._jwt_token

        self._jwt_token = jwt.encode(
            {"iss": self.config.team_id, "iat": int(now)},
            self._load_private_key(),
            algorithm=JWT_ALGORITHM,
            headers={"alg": JWT_ALGORITHM, "kid": self.config.key_id},
        )
        self._jwt_expires_at = now + JWT_TOKEN_LIFETIME_SECONDS

        logger.debug(
            "Generated new APNS JWT",
            extra={
                "team_id": self.config.team_id,
                "key_id": self.config.key_id,
                "expires_in": JWT_TOKEN_LIFETIME_SECONDS,
            }
        )
        return self._jwt_token

    def _build_headers(self, notification: Notification) -> dict:
        """Build request headers for APNS."""
        return {
            "authorization": f"bearer {self._generate_jwt()}",
            "apns-topic": self.config.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": str(notification.priority),
            "apns-expiration": str(notification.expiry),
        }

    def push_notification(self, notification: Notification, device: Device) -> None:
        """
        Submit a notification for one device and return immediately.

        The outcome arrives later as a transmitted or transmissionError
        event. Must be called from within the running event loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._transmit(notification, device))
        self._pending.add(task)
        task.add_done_callback(self._on_transmission_done)
        record_apns_submitted()

    def _on_transmission_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"APNS transmission task failed: {task.exception()}",
                exc_info=task.exception(),
            )
        if not self._pending:
            self.emit(Completed())

    async def _transmit(self, notification: Notification, device: Device) -> None:
        start_time = time.time()

        try:
            body = notification.compiled_payload.encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.error(f"APNS payload could not be compiled: {e}")
            self._fail(type(e).__name__, notification, device, start_time)
            return

        if len(body) > MAX_PAYLOAD_BYTES:
            self._fail(ERROR_PAYLOAD_TOO_LARGE, notification, device, start_time)
            return

        client = self._get_client()
        path = APNS_DEVICE_PATH.format(device_token=device.token)

        try:
            response = await client.post(
                path,
                content=body,
                headers=self._build_headers(notification),
            )
        except httpx.TimeoutException:
            self.emit(Timeout())
            self._fail(ERROR_TIMEOUT, notification, device, start_time)
            return
        except httpx.HTTPError as e:
            logger.warning(f"APNS HTTP error: {e}")
            self._fail(type(e).__name__, notification, device, start_time)
            return
        except Exception as e:
            logger.error(f"APNS unexpected error: {e}", exc_info=True)
            self._fail(type(e).__name__, notification, device, start_time)
            return

        if response.status_code == 200:
            record_apns_transmission("transmitted", time.time() - start_time)
            self.emit(Transmitted(notification=notification, device=device))
            return

        try:
            error_body = response.json() if response.content else {}
        except ValueError:
            error_body = {}
        reason = error_body.get("reason") or str(response.status_code)

        if response.status_code in APNS_TOKEN_INVALID_STATUS_CODES and self.feedback is not None:
            self.feedback.report(device, error_body.get("timestamp"))

        if response.status_code in APNS_AUTH_ERROR_STATUS_CODES:
            # Force a fresh provider token on the next request
            self._jwt_token = None
            self._jwt_expires_at = 0

        self._fail(reason, notification, device, start_time)

    def _fail(self, error_code, notification: Notification, device: Device, start_time: float) -> None:
        record_apns_transmission("error", time.time() - start_time)
        self.emit(TransmissionError(error_code=error_code, notification=notification, device=device))

    def shutdown(self) -> None:
        """
        Close the current socket once it is idle.

        The client is detached immediately so later submissions open a new
        one; closing the old client is scheduled on the running loop and
        awaited by ``close()``.
        """
        client, self._client = self._client, None
        if client is None or client.is_closed:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(client.aclose())
            self._closing.add(task)
            task.add_done_callback(self._on_close_done)
        logger.debug("APNS connection shutdown requested")

    def _on_close_done(self, task: asyncio.Task) -> None:
        self._closing.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"APNS client close failed: {task.exception()}")

    async def close(self) -> None:
        """Wait for in-flight transmissions and close the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
        logger.debug("APNS connection closed")
