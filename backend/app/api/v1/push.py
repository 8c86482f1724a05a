"""
APNs push API endpoints

- POST /api/v1/push/apn - Submit a push notification to one or more devices

Delivery is asynchronous: a 202 means every notification was handed to
the APNs connection. Per-device outcomes are only visible in logs.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.v1.devices import get_user_id
from app.core.config import settings
from app.core.database import get_db
from app.schemas.push import ApnPushRequest, ApnPushResponse
from app.services.device_service import DeviceService
from app.services.push import APNSTransport, get_apns_transport, push_notification

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/push",
    tags=["push"]
)


def get_push_transport() -> APNSTransport:
    """Dependency returning the process-wide APNs transport."""
    try:
        return get_apns_transport()
    except RuntimeError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.post(
    "/apn",
    response_model=ApnPushResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send an APNs push notification",
    responses={
        400: {"description": "Missing x-user-id header or malformed device token"},
        404: {"description": "Caller has no registered devices"},
        503: {"description": "APNs is not configured"},
    },
)
async def send_apn_push(
    body: ApnPushRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_user_id),
    transport: APNSTransport = Depends(get_push_transport),
) -> ApnPushResponse:
    """
    Submit one notification per recipient device.

    Without explicit device_tokens the caller's registered devices are used.
    """
    if body.device_tokens is not None:
        tokens: List[str] = body.device_tokens
    else:
        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing 'x-user-id' header",
            )
        tokens = DeviceService(db).tokens_for_user(user_id)
        if not tokens:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No devices registered for user",
            )

    connection = transport.connect()

    outcome: List[Optional[Exception]] = []
    submitted = push_notification(
        connection,
        tokens,
        body.alert,
        body.data,
        outcome.append,
        badge=body.badge if body.badge is not None else settings.APNS_DEFAULT_BADGE,
        sound=body.sound if body.sound is not None else settings.APNS_DEFAULT_SOUND,
        ttl=settings.APNS_NOTIFICATION_TTL_SECONDS,
    )

    if outcome and outcome[0] is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(outcome[0]),
        )

    logger.info(
        "APN push submitted",
        extra={"user_id": user_id, "submitted": submitted},
    )
    return ApnPushResponse(status="submitted", submitted=submitted)
