"""ApnDevice SQLAlchemy ORM model for APNs device tokens"""
from sqlalchemy import Column, String, DateTime, Index
from app.core.database import Base
import uuid
from datetime import datetime, timezone


class ApnDevice(Base):
    """
    A device registered to receive push notifications through APNs.

    Attributes:
        id: UUID primary key
        user_id: Caller identity from the x-user-id header
        token: Normalized hex device token (unique)
        name: User-friendly device name (e.g., "iPhone 15 Pro")
        created_at: First registration timestamp (UTC)
        updated_at: Last (re-)registration timestamp (UTC); feedback older
            than this does not remove the device
    """

    __tablename__ = "apn_devices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False)
    token = Column(String(200), nullable=False, unique=True)
    name = Column(String(100), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index('idx_apn_devices_user', 'user_id'),
        Index('idx_apn_devices_token', 'token'),
    )

    def __repr__(self):
        return f"<ApnDevice(id={self.id}, token={self.token[:20]}..., user_id={self.user_id})>"

    def touch(self) -> None:
        """Mark the device as freshly registered."""
        self.updated_at = datetime.now(timezone.utc)
