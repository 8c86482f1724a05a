"""
APNs device token store.

Registration and lookup for the HTTP API, plus the pruning entry point
the feedback listener calls with each batch of invalidated tokens.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.database import get_db_session
from app.core.metrics import record_apns_devices_pruned
from app.models.device import ApnDevice
from app.services.push.models import Device, FeedbackRecord

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DeviceService:
    """
    Device token persistence.

    Usage:
        service = DeviceService(db)
        service.register("user-1", "<0123 4567 ...>", name="iPhone")
        tokens = service.tokens_for_user("user-1")
    """

    def __init__(self, db: Session):
        self.db = db

    def register(self, user_id: str, token: str, name: Optional[str] = None) -> tuple[ApnDevice, bool]:
        """
        Register a token, or refresh it if it is already known.

        A token registered by another user is reassigned to the caller.

        Raises:
            ValueError: If the token is not a valid APNs token

        Returns:
            Tuple of (device, is_new)
        """
        normalized = Device(token).token

        device = self.db.query(ApnDevice).filter(ApnDevice.token == normalized).first()
        is_new = device is None

        if is_new:
            device = ApnDevice(user_id=user_id, token=normalized, name=name)
            self.db.add(device)
        else:
            device.user_id = user_id
            if name is not None:
                device.name = name
            device.touch()

        self.db.commit()
        self.db.refresh(device)

        logger.info(
            "New device registered" if is_new else "Updated device registration",
            extra={"user_id": user_id, "device_token": normalized[:20] + "..."},
        )
        return device, is_new

    def list_for_user(self, user_id: str) -> List[ApnDevice]:
        return (
            self.db.query(ApnDevice)
            .filter(ApnDevice.user_id == user_id)
            .order_by(ApnDevice.created_at)
            .all()
        )

    def tokens_for_user(self, user_id: str) -> List[str]:
        return [device.token for device in self.list_for_user(user_id)]

    def delete(self, user_id: str, token: str) -> bool:
        """
        Remove one of the caller's devices.

        Returns:
            True if a device was removed
        """
        try:
            normalized = Device(token).token
        except ValueError:
            return False

        device = self.db.query(ApnDevice).filter(
            ApnDevice.token == normalized,
            ApnDevice.user_id == user_id,
        ).first()
        if device is None:
            return False

        self.db.delete(device)
        self.db.commit()
        return True

    def delete_apn_devices(self, records: Sequence[FeedbackRecord]) -> int:
        """
        Remove devices APNs reported as invalid.

        A device re-registered after the feedback timestamp is kept: the
        app obtained a fresh registration since APNs gave up on it.

        Returns:
            Number of devices removed
        """
        reported = {}
        for record in records:
            token = str(record.device)
            if token not in reported or record.time > reported[token]:
                reported[token] = record.time

        if not reported:
            return 0

        devices = self.db.query(ApnDevice).filter(ApnDevice.token.in_(list(reported))).all()

        removed = 0
        for device in devices:
            if _as_utc(device.updated_at) > _as_utc(reported[device.token]):
                logger.debug(
                    "Keeping device re-registered after feedback",
                    extra={"device_token": device.token[:20] + "..."},
                )
                continue
            self.db.delete(device)
            removed += 1

        self.db.commit()

        logger.info(
            "Pruned APNs devices",
            extra={"reported": len(reported), "removed": removed},
        )
        return removed


def prune_apn_devices(records: Sequence[FeedbackRecord]) -> int:
    """
    Remove a feedback batch from storage in its own session.

    Failures are logged and swallowed; the feedback channel never sees them.
    """
    try:
        with get_db_session() as db:
            removed = DeviceService(db).delete_apn_devices(records)
    except Exception as e:
        logger.error(f"Error pruning APNs devices: {e}", exc_info=True)
        return 0

    record_apns_devices_pruned(removed)
    return removed
