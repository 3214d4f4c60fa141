"""Transactional email dispatch.

The booking workflow depends on the narrow ``EmailDispatcher`` contract:
``send(to, subject, html)`` resolves when the message was accepted by the
transport and raises ``EmailDeliveryError`` otherwise.
"""

import logging
from typing import Any, Protocol

import httpx

from app.config import Settings, settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class EmailDeliveryError(Exception):
    """Raised when the transport rejects or fails to accept a message."""

    def __init__(self, to_email: str, reason: str) -> None:
        self.to_email = to_email
        self.reason = reason
        super().__init__(f"Email to {to_email} failed: {reason}")


class EmailDispatcher(Protocol):
    async def send(self, to_email: str, subject: str, html_content: str) -> None: ...


class SendGridEmailDispatcher:
    """Send email via the SendGrid v3 API."""

    def __init__(self, config: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> None:
        self.config = config or settings
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.email_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    async def send(self, to_email: str, subject: str, html_content: str) -> None:
        """Send an HTML email.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body

        Raises:
            EmailDeliveryError: On network errors or a non-2xx response
        """
        headers = {
            "Authorization": f"Bearer {self.config.sendgrid_api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": self.config.email_from_address,
                "name": self.config.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }

        try:
            response = await self.http_client.post(SENDGRID_SEND_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(to_email, f"transport error: {e}") from e

        if response.status_code not in (200, 202):
            raise EmailDeliveryError(to_email, f"SendGrid responded {response.status_code}")

        logger.info(f"Email sent to {to_email}: {subject}")


class LoggingEmailDispatcher:
    """Development dispatcher that logs messages instead of sending them."""

    def __init__(self) -> None:
        self.outbox: list[dict[str, str]] = []

    async def send(self, to_email: str, subject: str, html_content: str) -> None:
        self.outbox.append({"to": to_email, "subject": subject, "html": html_content})
        logger.info(f"[email disabled] to={to_email} subject={subject!r}")

    async def close(self) -> None:
        return None


_dispatcher: SendGridEmailDispatcher | LoggingEmailDispatcher | None = None


def get_email_dispatcher() -> SendGridEmailDispatcher | LoggingEmailDispatcher:
    """FastAPI dependency returning the configured dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        if settings.sendgrid_api_key:
            _dispatcher = SendGridEmailDispatcher(settings)
        else:
            if settings.environment == "production":
                logger.warning("SENDGRID_API_KEY is not set; booking emails will only be logged")
            _dispatcher = LoggingEmailDispatcher()
    return _dispatcher


async def close_email_dispatcher() -> None:
    """Release the dispatcher's HTTP resources on shutdown."""
    global _dispatcher
    if _dispatcher is not None:
        await _dispatcher.close()
        _dispatcher = None
