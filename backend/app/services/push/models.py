"""
Value objects for the APNs transport.

Device, Notification and FeedbackRecord are built per send (or per
feedback report) and discarded afterwards. APNSConfig is the validated
provider configuration.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.services.push.constants import DEFAULT_PRIORITY

# Characters tolerated around hex tokens, e.g. "<0123 4567 89ab cdef>"
_TOKEN_DECORATION = re.compile(r"[<>\s]")
_HEX = re.compile(r"^[0-9a-f]+$")


class Device:
    """One recipient device, identified by its APNs token.

    Accepts the raw token bytes or the hex string form, with or without
    the angle brackets and spaces of NSData's description.

    Raises:
        ValueError: If the token is empty or not hexadecimal
    """

    __slots__ = ("token",)

    def __init__(self, token: Union[str, bytes]):
        if isinstance(token, (bytes, bytearray)):
            normalized = bytes(token).hex()
        else:
            normalized = _TOKEN_DECORATION.sub("", str(token)).lower()

        if not normalized or len(normalized) % 2 or not _HEX.match(normalized):
            raise ValueError(f"Invalid device token: {token!r}")

        self.token = normalized

    def __str__(self) -> str:
        return self.token

    def __repr__(self) -> str:
        return f"<Device(token={self.token[:16]}...)>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return self.token == other.token

    def __hash__(self) -> int:
        return hash(self.token)


@dataclass
class Notification:
    """A single outbound notification.

    Attributes:
        expiry: UNIX timestamp after which APNs stops trying to deliver
        alert: Alert text shown to the user
        payload: Custom data, merged at the payload root when it is a mapping
        badge: App icon badge number
        sound: Sound file name in the app bundle
        priority: apns-priority header (10 immediate, 5 power-considerate)
    """

    expiry: int
    alert: str
    payload: Any = field(default_factory=dict)
    badge: Optional[int] = None
    sound: Optional[str] = None
    priority: int = DEFAULT_PRIORITY

    def to_apns_dict(self) -> Dict[str, Any]:
        """Build the APNs JSON document."""
        aps: Dict[str, Any] = {"alert": self.alert}
        if self.badge is not None:
            aps["badge"] = self.badge
        if self.sound:
            aps["sound"] = self.sound

        document: Dict[str, Any] = {"aps": aps}
        if isinstance(self.payload, dict):
            for key, value in self.payload.items():
                if key != "aps":
                    document[key] = value
        elif self.payload is not None:
            document["data"] = self.payload

        return document

    @property
    def compiled_payload(self) -> str:
        """Compact JSON body as sent on the wire."""
        return json.dumps(self.to_apns_dict(), separators=(",", ":"), ensure_ascii=False)

    @property
    def length(self) -> int:
        """Size of the compiled payload in bytes."""
        return len(self.compiled_payload.encode("utf-8"))

    def __str__(self) -> str:
        try:
            return self.compiled_payload
        except (TypeError, ValueError):
            return repr(self.to_apns_dict())


@dataclass(frozen=True)
class FeedbackRecord:
    """A device token APNs reported as no longer valid."""

    time: datetime
    device: Device

    @classmethod
    def from_apns_timestamp(cls, device: Device, timestamp: Optional[Union[int, float]]) -> "FeedbackRecord":
        """Build a record from the millisecond timestamp APNs returns with 410."""
        if timestamp is None:
            when = datetime.now(timezone.utc)
        else:
            when = datetime.fromtimestamp(float(timestamp) / 1000.0, tz=timezone.utc)
        return cls(time=when, device=device)


class APNSConfig(BaseModel):
    """Configuration for the APNs connection.

    Attributes:
        key_file: Path to the .p8 auth key file
        key_id: 10-character key identifier from Apple Developer Portal
        team_id: 10-character team identifier
        bundle_id: App bundle identifier, sent as apns-topic
        use_sandbox: Whether to use sandbox environment (development)
    """

    key_file: str = Field(..., description="Path to .p8 auth key file")
    key_id: str = Field(..., min_length=10, max_length=10, description="10-character key ID")
    team_id: str = Field(..., min_length=10, max_length=10, description="10-character team ID")
    bundle_id: str = Field(..., description="App bundle identifier")
    use_sandbox: bool = Field(default=False, description="Use sandbox environment")

    @field_validator("key_id", "team_id")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Validate that identifiers are alphanumeric."""
        if not v.isalnum():
            raise ValueError("Must be alphanumeric")
        return v.upper()
