"""APNs device Pydantic schemas for request/response validation"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List


class DeviceCreate(BaseModel):
    """Schema for device registration request."""
    token: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="APNs device token (hex, angle brackets and spaces allowed)"
    )
    name: Optional[str] = Field(
        None,
        max_length=100,
        description="User-friendly device name (e.g., 'iPhone 15 Pro')"
    )

    @field_validator('token')
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject blank tokens; hex validation happens in the service."""
        v = v.strip()
        if not v:
            raise ValueError("token cannot be empty")
        return v


class DeviceResponse(BaseModel):
    """Schema for device response."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Device UUID")
    user_id: str = Field(..., description="Owner identity")
    token: str = Field(..., description="Normalized hex device token")
    name: Optional[str] = Field(None, description="Device name")
    created_at: datetime = Field(..., description="Registration timestamp")
    updated_at: datetime = Field(..., description="Last registration timestamp")


class DeviceListResponse(BaseModel):
    """Schema for listing the caller's devices."""
    devices: List[DeviceResponse] = Field(
        default_factory=list,
        description="List of registered devices"
    )
    total: int = Field(
        ...,
        description="Total number of devices"
    )


class DeviceRegistrationResponse(BaseModel):
    """Schema for device registration response."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Device UUID")
    token: str = Field(..., description="Normalized hex device token")
    created_at: datetime = Field(..., description="Registration timestamp")
    is_new: bool = Field(..., description="True if new device, False if updated existing")
