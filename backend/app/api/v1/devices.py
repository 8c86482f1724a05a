"""
APNs device registration API endpoints

- POST /api/v1/devices - Register (or refresh) a device token
- GET /api/v1/devices - List the caller's devices
- DELETE /api/v1/devices/{token} - Remove a device
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.device import (
    DeviceCreate,
    DeviceListResponse,
    DeviceRegistrationResponse,
    DeviceResponse,
)
from app.services.device_service import DeviceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/devices",
    tags=["devices"]
)


def get_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Caller identity from the x-user-id header (not verified here)."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def require_user_id(user_id: Optional[str] = Depends(get_user_id)) -> str:
    """Like get_user_id, but the header is mandatory."""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing 'x-user-id' header",
        )
    return user_id


@router.post(
    "",
    response_model=DeviceRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a device",
    description="Register a device token for APNs push notifications. Upserts on token.",
    responses={
        400: {"description": "Missing x-user-id header or invalid token"},
    },
)
async def register_device(
    device_data: DeviceCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> DeviceRegistrationResponse:
    """
    Register a device for push notifications.

    If the token is already registered, it is refreshed and reassigned to
    the caller (upsert behavior).
    """
    try:
        device, is_new = DeviceService(db).register(user_id, device_data.token, device_data.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DeviceRegistrationResponse(
        id=device.id,
        token=device.token,
        created_at=device.created_at,
        is_new=is_new,
    )


@router.get(
    "",
    response_model=DeviceListResponse,
    summary="List devices",
    description="List all devices registered to the caller.",
)
async def list_devices(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> DeviceListResponse:
    devices = DeviceService(db).list_for_user(user_id)
    return DeviceListResponse(
        devices=[DeviceResponse.model_validate(d) for d in devices],
        total=len(devices),
    )


@router.delete(
    "/{token}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a device",
    responses={
        404: {"description": "Device not found"},
    },
)
async def delete_device(
    token: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> None:
    if not DeviceService(db).delete(user_id, token):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Device not found",
        )

    logger.info(
        "Device removed",
        extra={"user_id": user_id, "device_token": token[:20] + "..."},
    )
