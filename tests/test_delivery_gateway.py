import asyncio
import json
import pytest
from datetime import date, timedelta

import httpx
from loguru import logger

from foodexpiry.schemas.email_schemas import RenderedEmail
from foodexpiry.schemas.notification_schemas import ExpirationStatus, ItemWithStatus
from foodexpiry.services.email.delivery_gateway import NotificationDeliveryGateway
from foodexpiry.services.email.transport import EmailTransport, SendGridTransport
from foodexpiry.utils.errors import InvalidRecipientError, TransportError

from conftest import RecordingTransport

TODAY = date(2026, 10, 18)


def _item(item_id, name, days, status):
    return ItemWithStatus(
        id=item_id,
        user_id=1,
        name=name,
        quantity=2,
        unit="cartons",
        expiration_date=TODAY + timedelta(days=days),
        status=status,
        days_until_expiration=days,
    )


EXPIRED = [_item(1, "Milk", -2, ExpirationStatus.EXPIRED)]
EXPIRING = [_item(2, "Yogurt", 1, ExpirationStatus.EXPIRING_SOON)]


class SlowTransport(EmailTransport):
    async def send(self, to, from_address, subject, text, html):
        await asyncio.sleep(5)


def _gateway(transport, fallback_enabled=False, timeout_seconds=1.0):
    return NotificationDeliveryGateway(
        transport=transport,
        from_address="notifications@foodexpiry.app",
        fallback_enabled=fallback_enabled,
        timeout_seconds=timeout_seconds,
    )


@pytest.fixture
def captured_logs():
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record), level="WARNING")
    yield messages
    logger.remove(handler_id)


class TestDeliver:
    """Test the success, failure and fallback paths of the gateway."""

    @pytest.mark.asyncio
    async def test_accepted_message_returns_true(self, transport, gateway):
        assert await gateway.send_expiration_digest("alice@example.com", EXPIRED, EXPIRING)

        [message] = transport.sent
        assert message["to"] == "alice@example.com"
        assert message["from"] == "notifications@foodexpiry.app"
        assert message["subject"] == "FoodExpiry Alert: 1 expired and 1 expiring soon"

    @pytest.mark.asyncio
    async def test_transport_failure_without_fallback_returns_false(self):
        gateway = _gateway(RecordingTransport(fail_all=True))

        assert await gateway.send_generic_message("alice@example.com", "Hi", "Body") is False

    @pytest.mark.asyncio
    async def test_unexpected_transport_exception_is_absorbed(self):
        class BrokenTransport(EmailTransport):
            async def send(self, to, from_address, subject, text, html):
                raise ConnectionResetError("peer reset")

        outcome = await _gateway(BrokenTransport()).deliver(
            "alice@example.com", RenderedEmail(subject="Hi", text="Body", html="<p>Body</p>")
        )

        assert outcome.success is False
        assert outcome.error == "peer reset"

    @pytest.mark.asyncio
    async def test_fallback_logs_structured_record_and_succeeds(self, captured_logs):
        gateway = _gateway(RecordingTransport(fail_all=True), fallback_enabled=True)

        outcome = await gateway.send_test_notification("alice@example.com", EXPIRED, [])

        assert outcome.success is True
        assert outcome.used_fallback is True
        [record] = [r for r in captured_logs if r["extra"].get("email_fallback")]
        assert record["extra"]["to"] == "alice@example.com"
        assert record["extra"]["subject"] == "FoodExpiry Test Notification"
        assert "EMAIL FALLBACK" in record["message"]
        assert "Connection refused" in record["extra"]["reason"]

    @pytest.mark.asyncio
    async def test_timeout_counts_as_transport_failure(self):
        gateway = _gateway(SlowTransport(), timeout_seconds=0.05)

        outcome = await gateway.send_test_notification("alice@example.com", [], [])

        assert outcome.success is False
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_timeout_with_fallback_uses_fallback(self):
        gateway = _gateway(SlowTransport(), fallback_enabled=True, timeout_seconds=0.05)

        assert await gateway.send_weekly_summary("alice@example.com", EXPIRED, TODAY) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipient", ["", "not-an-email", "a@b", "two@@example.com", None])
    async def test_malformed_recipient_raises(self, transport, gateway, recipient):
        with pytest.raises(InvalidRecipientError):
            await gateway.send_generic_message(recipient, "Hi", "Body")
        assert transport.attempts == []

    @pytest.mark.asyncio
    async def test_sends_unconditionally(self, transport, gateway):
        for _ in range(2):
            await gateway.send_expiration_digest("alice@example.com", EXPIRED, [])

        assert len(transport.sent_to("alice@example.com")) == 2

    @pytest.mark.asyncio
    async def test_verification_and_reset_emails(self, transport, gateway):
        assert await gateway.send_verification_code("alice@example.com", "123456", 10)
        assert await gateway.send_password_reset_code("alice@example.com", "654321", 10)

        verification, reset = transport.sent
        assert verification["subject"] == "123456 is your FoodExpiry verification code"
        assert "This code will expire in 10 minutes." in verification["text"]
        assert "654321" in reset["text"]


class TestSendGridTransport:
    """Test the SendGrid transport against a mocked HTTP layer."""

    @pytest.mark.asyncio
    async def test_posts_v3_payload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        transport = SendGridTransport(
            api_key="SG.test", http_transport=httpx.MockTransport(handler)
        )

        await transport.send(
            "alice@example.com", "notifications@foodexpiry.app", "Hi", "Body", "<p>Body</p>"
        )

        [request] = requests
        assert request.headers["Authorization"] == "Bearer SG.test"
        body = json.loads(request.content)
        assert body["personalizations"] == [{"to": [{"email": "alice@example.com"}]}]
        assert body["from"] == {"email": "notifications@foodexpiry.app"}
        assert [part["type"] for part in body["content"]] == ["text/plain", "text/html"]

    @pytest.mark.asyncio
    async def test_rejection_raises_transport_error(self):
        transport = SendGridTransport(
            api_key="SG.test",
            http_transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad key")),
        )

        with pytest.raises(TransportError) as exc_info:
            await transport.send("alice@example.com", "from@foodexpiry.app", "Hi", "Body", "Body")
        assert exc_info.value.error_code == "TRANSPORT_REJECTED"

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = SendGridTransport(api_key="SG.test", http_transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError):
            await transport.send("alice@example.com", "from@foodexpiry.app", "Hi", "Body", "Body")

    @pytest.mark.asyncio
    async def test_unconfigured_transport_falls_back_through_gateway(self):
        transport = SendGridTransport(api_key="")
        assert transport.is_configured() is False

        gateway = _gateway(transport, fallback_enabled=True)
        outcome = await gateway.send_test_notification("alice@example.com", [], [])

        assert outcome.success is True
        assert outcome.used_fallback is True
        assert "not configured" in outcome.error
