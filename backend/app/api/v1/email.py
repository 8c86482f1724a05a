"""
Email API endpoints

- POST /api/v1/email - Send a single HTML email through Mailgun
"""
import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.config import settings
from app.core.logging_config import sanitize_log_value
from app.schemas.email import EmailResponse, SingleEmail
from app.services.mailgun_service import MailgunError, MailgunService, get_mailgun_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/email",
    tags=["email"]
)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_email(value: object) -> bool:
    return isinstance(value, str) and bool(EMAIL_REGEX.match(value.strip()))


async def check_single_email(request: Request) -> SingleEmail:
    """
    Validate a single-email request body.

    Fills subject and from from settings when absent, then requires a valid
    'to' address and a non-empty 'html' string.
    """
    try:
        email_obj = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be JSON",
        )
    if not isinstance(email_obj, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be a JSON object",
        )

    email_obj["subject"] = email_obj.get("subject") or settings.MAILGUN_SUBJECT
    email_obj["from"] = email_obj.get("from") or settings.MAILGUN_FROM

    if not is_email(email_obj.get("to")):
        logger.error("Missing 'to' property in parameters", extra={"to": sanitize_log_value(email_obj.get("to"))})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing 'to' property in parameters",
        )

    html = email_obj.get("html")
    if not isinstance(html, str) or not html:
        logger.error("Missing 'html' String property in request body", extra={"to": sanitize_log_value(email_obj.get("to"))})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing 'html' String property in request body",
        )

    return SingleEmail(
        to=email_obj["to"].strip(),
        html=html,
        subject=str(email_obj["subject"]),
        from_email=str(email_obj["from"]),
    )


def get_email_service() -> MailgunService:
    """Dependency returning the process-wide Mailgun service."""
    try:
        return get_mailgun_service()
    except RuntimeError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.post(
    "",
    response_model=EmailResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a single email",
    responses={
        400: {"description": "Missing or invalid 'to' or 'html'"},
        502: {"description": "Mailgun rejected the message"},
        503: {"description": "Mailgun is not configured"},
    },
)
async def send_email(
    email: SingleEmail = Depends(check_single_email),
    mailgun: MailgunService = Depends(get_email_service),
) -> EmailResponse:
    try:
        message_id = await mailgun.send(
            to=email.to,
            subject=email.subject,
            html=email.html,
            from_email=email.from_email,
        )
    except MailgunError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        )

    return EmailResponse(status="queued", id=message_id)
