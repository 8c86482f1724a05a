"""APNs push request/response schemas"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ApnPushRequest(BaseModel):
    """
    Request body for sending an APNs push notification.

    When device_tokens is omitted, the notification goes to every device
    registered to the caller (x-user-id header).
    """
    alert: str = Field(..., min_length=1, description="Alert text shown on the device")
    data: Dict[str, Any] = Field(default_factory=dict, description="Custom payload data")
    device_tokens: Optional[List[str]] = Field(
        None,
        description="Explicit recipient tokens; defaults to the caller's devices"
    )
    badge: Optional[int] = Field(None, ge=0, description="Badge number (defaults from settings)")
    sound: Optional[str] = Field(None, description="Sound name (defaults from settings)")


class ApnPushResponse(BaseModel):
    """Submission result. Delivery is reported asynchronously, never here."""
    status: str = Field("submitted", description="Always 'submitted' on success")
    submitted: int = Field(..., description="Number of notifications handed to APNs")

