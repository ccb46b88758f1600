from abc import ABC, abstractmethod
from typing import Optional

import httpx

from foodexpiry.config.settings import settings
from foodexpiry.utils.errors import TransportError
from foodexpiry.utils.logging import get_logger

logger = get_logger()


class EmailTransport(ABC):
    """Outbound email channel. ``send`` returns on acceptance and raises ``TransportError`` otherwise."""

    @abstractmethod
    async def send(
        self, to: str, from_address: str, subject: str, text: str, html: str
    ) -> None:
        pass

    def is_configured(self) -> bool:
        return True


class SendGridTransport(EmailTransport):
    """Transport backed by the SendGrid v3 mail send API."""

    def __init__(
        self,
        api_key: str = settings.SENDGRID_API_KEY,
        api_url: str = settings.SENDGRID_API_URL,
        timeout: float = settings.EMAIL_SEND_TIMEOUT_SECONDS,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._http_transport = http_transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _build_payload(
        self, to: str, from_address: str, subject: str, text: str, html: str
    ) -> dict:
        return {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": from_address},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
        }

    async def send(
        self, to: str, from_address: str, subject: str, text: str, html: str
    ) -> None:
        if not self.is_configured():
            raise TransportError(
                "SendGrid is not configured (SENDGRID_API_KEY is empty)",
                error_code="TRANSPORT_NOT_CONFIGURED",
            )

        try:
            async with httpx.AsyncClient(transport=self._http_transport) as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._build_payload(to, from_address, subject, text, html),
                    timeout=self.timeout,
                )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"SendGrid request timed out: {e}", error_code="TRANSPORT_TIMEOUT"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"SendGrid request failed: {e}") from e

        # SendGrid answers 202 Accepted for queued mail
        if response.status_code not in (200, 202):
            raise TransportError(
                f"SendGrid rejected message: {response.status_code} - {response.text}",
                error_code="TRANSPORT_REJECTED",
            )

        logger.debug(f"SendGrid accepted message to {to}")
