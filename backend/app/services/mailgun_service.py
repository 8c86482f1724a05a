"""
Mailgun email transport.

Sends single HTML emails through the Mailgun messages API.
"""
import logging
import urllib.parse
from typing import Optional

import httpx

from app.core.metrics import record_email_sent

logger = logging.getLogger(__name__)


class MailgunError(Exception):
    """Mailgun rejected the message or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MailgunService:
    """
    Client for the Mailgun messages endpoint.

    Usage:
        service = MailgunService(api_key="key-...", domain="mg.example.com")
        message_id = await service.send(
            to="user@example.com",
            subject="Hello",
            html="<p>Hi</p>",
            from_email="Notifications <no-reply@mg.example.com>",
        )
    """

    def __init__(
        self,
        api_key: str,
        domain: str,
        base_url: str = "https://api.mailgun.net",
        timeout: float = 10.0,
    ):
        self.domain = domain
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/v3/{urllib.parse.quote(self.domain, safe='')}/messages"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=("api", self._api_key),
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def send(self, to: str, subject: str, html: str, from_email: str) -> Optional[str]:
        """
        Send one email.

        Returns:
            Mailgun message id, if Mailgun returned one

        Raises:
            MailgunError: On a non-2xx response or a transport failure
        """
        client = self._get_client()
        form = {"from": from_email, "to": to, "subject": subject, "html": html}

        try:
            response = await client.post(self.endpoint, data=form)
        except httpx.HTTPError as e:
            record_email_sent("failure")
            logger.error(f"Mailgun request failed: {e}", extra={"to": to})
            raise MailgunError(f"Mailgun email send failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            record_email_sent("failure")
            details = response.text[:300]
            logger.error(
                "Mailgun rejected email",
                extra={"to": to, "status_code": response.status_code, "details": details},
            )
            raise MailgunError(
                f"Mailgun email send failed HTTP {response.status_code}: {details}",
                status_code=response.status_code,
            )

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None

        record_email_sent("success")
        logger.info("Email queued", extra={"to": to, "message_id": message_id})
        return message_id

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


# Global service instance
_mailgun_service: Optional[MailgunService] = None


def get_mailgun_service() -> MailgunService:
    """
    Get the global Mailgun service built from settings.

    Raises:
        RuntimeError: If Mailgun is not configured
    """
    global _mailgun_service
    if _mailgun_service is None:
        from app.core.config import settings

        if not settings.mailgun_ready:
            raise RuntimeError("Mailgun is not configured")

        _mailgun_service = MailgunService(
            api_key=settings.MAILGUN_API_KEY,
            domain=settings.MAILGUN_DOMAIN,
            base_url=settings.MAILGUN_BASE_URL,
            timeout=settings.MAILGUN_TIMEOUT_SECONDS,
        )
    return _mailgun_service


async def shutdown_mailgun_service() -> None:
    """Close the global Mailgun client on app shutdown."""
    global _mailgun_service
    if _mailgun_service:
        await _mailgun_service.close()
        _mailgun_service = None
