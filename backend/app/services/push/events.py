"""
Lifecycle events published by the APNs connection and feedback channel.

Every event carries a ``name`` matching the provider's event name so log
lines and tests can refer to either.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, List

from app.services.push.models import Device, FeedbackRecord, Notification


@dataclass(frozen=True)
class Connected:
    """A new socket to APNs was opened."""

    socket_id: int
    name: ClassVar[str] = "connected"


@dataclass(frozen=True)
class Completed:
    """All in-flight transmissions finished; the connection may close."""

    name: ClassVar[str] = "completed"


@dataclass(frozen=True)
class Timeout:
    """The underlying socket timed out."""

    name: ClassVar[str] = "timeout"


@dataclass(frozen=True)
class Transmitted:
    """APNs accepted one notification for one device."""

    notification: Notification
    device: Device
    name: ClassVar[str] = "transmitted"


@dataclass(frozen=True)
class TransmissionError:
    """APNs rejected one notification for one device, or it never arrived."""

    error_code: Any
    notification: Notification
    device: Device
    name: ClassVar[str] = "transmissionError"


@dataclass(frozen=True)
class FeedbackConnectionError:
    """The feedback channel itself failed."""

    error: Any
    name: ClassVar[str] = "error"


@dataclass(frozen=True)
class FeedbackProtocolError:
    """A feedback report could not be understood."""

    error: Any
    name: ClassVar[str] = "feedbackError"


@dataclass(frozen=True)
class FeedbackReceived:
    """A batch of devices to invalidate."""

    records: List[FeedbackRecord]
    name: ClassVar[str] = "feedback"


CONNECTION_EVENTS = (Connected, Completed, Timeout, Transmitted, TransmissionError)
FEEDBACK_EVENTS = (FeedbackConnectionError, FeedbackProtocolError, FeedbackReceived)
