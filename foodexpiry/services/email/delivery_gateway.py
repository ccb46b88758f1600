import asyncio
import re
from datetime import date
from typing import Optional, Sequence

from foodexpiry.config.settings import settings
from foodexpiry.schemas.email_schemas import DeliveryOutcome, RenderedEmail
from foodexpiry.schemas.notification_schemas import ItemWithStatus
from foodexpiry.services.email import templates
from foodexpiry.services.email.transport import EmailTransport
from foodexpiry.utils.errors import InvalidRecipientError
from foodexpiry.utils.logging import get_logger

logger = get_logger()

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
FALLBACK_PREVIEW_LENGTH = 200


class NotificationDeliveryGateway:
    """
    Sends rendered notification emails through an EmailTransport.

    Every send is bounded by ``timeout_seconds``. A transport failure (rejection,
    timeout, unreachable host or anything else raised by the transport) never
    escapes: with fallback enabled the would-be message is written to the log
    sink and the send counts as successful, otherwise the send reports failure.
    Only a malformed recipient raises, as ``InvalidRecipientError``.

    The gateway does not deduplicate; callers decide when to send.
    """

    def __init__(
        self,
        transport: EmailTransport,
        from_address: str = settings.EMAIL_FROM_ADDRESS,
        fallback_enabled: bool = settings.EMAIL_FALLBACK_ENABLED,
        timeout_seconds: float = settings.EMAIL_SEND_TIMEOUT_SECONDS,
        app_name: str = settings.NAME,
        app_url: str = settings.APP_URL,
    ):
        self.transport = transport
        self.from_address = from_address
        self.fallback_enabled = fallback_enabled
        self.timeout_seconds = timeout_seconds
        self.app_name = app_name
        self.app_url = app_url

    @staticmethod
    def validate_recipient(to: str) -> str:
        if not isinstance(to, str) or not EMAIL_PATTERN.match(to.strip()):
            raise InvalidRecipientError(to)
        return to.strip()

    async def deliver(self, to: str, email: RenderedEmail) -> DeliveryOutcome:
        """Send one rendered email and report how it went."""
        to = self.validate_recipient(to)

        try:
            await asyncio.wait_for(
                self.transport.send(
                    to=to,
                    from_address=self.from_address,
                    subject=email.subject,
                    text=email.text,
                    html=email.html,
                ),
                timeout=self.timeout_seconds,
            )
            logger.info(f"Email sent to {to}: {email.subject}")
            return DeliveryOutcome(success=True)
        except asyncio.TimeoutError:
            reason = f"send timed out after {self.timeout_seconds}s"
        except Exception as e:
            reason = str(e) or type(e).__name__

        logger.warning(f"Email transport failed for {to}: {reason}")

        if not self.fallback_enabled:
            return DeliveryOutcome(success=False, error=reason)

        self._write_fallback_record(to, email, reason)
        return DeliveryOutcome(success=True, used_fallback=True, error=reason)

    def _write_fallback_record(self, to: str, email: RenderedEmail, reason: str) -> None:
        preview = email.text[:FALLBACK_PREVIEW_LENGTH]
        if len(email.text) > FALLBACK_PREVIEW_LENGTH:
            preview += "..."
        logger.bind(
            email_fallback=True,
            to=to,
            from_address=self.from_address,
            subject=email.subject,
            reason=reason,
        ).warning(
            "EMAIL FALLBACK (transport unavailable)\n"
            f"To: {to}\n"
            f"From: {self.from_address}\n"
            f"Subject: {email.subject}\n"
            f"Content preview: {preview}"
        )

    async def send_expiration_digest(
        self,
        to: str,
        expired: Sequence[ItemWithStatus],
        expiring_soon: Sequence[ItemWithStatus],
    ) -> bool:
        email = templates.render_expiration_digest(
            expired, expiring_soon, app_name=self.app_name, app_url=self.app_url
        )
        return (await self.deliver(to, email)).success

    async def send_weekly_summary(
        self, to: str, items: Sequence[ItemWithStatus], today: date
    ) -> bool:
        email = templates.render_weekly_summary(
            items, today, app_name=self.app_name, app_url=self.app_url
        )
        return (await self.deliver(to, email)).success

    async def send_generic_message(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> bool:
        email = RenderedEmail(subject=subject, text=text, html=html or text)
        return (await self.deliver(to, email)).success

    async def send_test_notification(
        self,
        to: str,
        expired: Sequence[ItemWithStatus],
        expiring_soon: Sequence[ItemWithStatus],
    ) -> DeliveryOutcome:
        email = templates.render_test_notification(
            expired, expiring_soon, app_name=self.app_name
        )
        return await self.deliver(to, email)

    async def send_verification_code(self, to: str, code: str, ttl_minutes: int) -> bool:
        email = templates.render_verification_code(code, ttl_minutes, app_name=self.app_name)
        return (await self.deliver(to, email)).success

    async def send_password_reset_code(self, to: str, code: str, ttl_minutes: int) -> bool:
        email = templates.render_password_reset_code(
            code, ttl_minutes, app_name=self.app_name
        )
        return (await self.deliver(to, email)).success
