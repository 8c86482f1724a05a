"""Pydantic schemas for request/response validation"""
from app.schemas.device import (
    DeviceCreate,
    DeviceResponse,
    DeviceListResponse,
    DeviceRegistrationResponse,
)
from app.schemas.email import (
    SingleEmail,
    EmailResponse,
)
from app.schemas.push import (
    ApnPushRequest,
    ApnPushResponse,
)

__all__ = [
    "DeviceCreate",
    "DeviceResponse",
    "DeviceListResponse",
    "DeviceRegistrationResponse",
    "SingleEmail",
    "EmailResponse",
    "ApnPushRequest",
    "ApnPushResponse",
]
