import pytest
from datetime import date, datetime, timezone
from typing import AsyncGenerator, Dict, List, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodexpiry.db.db import create_tables
from foodexpiry.db.models import (
    ExpirationFrequency,
    NotificationPreference,
    PerishableItem,
    User,
)
from foodexpiry.db.session import create_engine_for_url, create_session_factory
from foodexpiry.services.email.delivery_gateway import NotificationDeliveryGateway
from foodexpiry.services.email.transport import EmailTransport
from foodexpiry.stores.sql import (
    SqlAccountStore,
    SqlCodeStore,
    SqlInventoryStore,
    SqlPreferenceStore,
)
from foodexpiry.utils.errors import TransportError


# Frozen clock shared by the scheduler tests: Sunday 2026-10-18, 08:00 UTC
FROZEN_NOW = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 18)
ACCOUNT_EMAIL = object()


class RecordingTransport(EmailTransport):
    """In-memory transport that records accepted messages and fails on demand."""

    def __init__(self, failing_recipients: Optional[List[str]] = None, fail_all: bool = False):
        self.failing_recipients = set(failing_recipients or [])
        self.fail_all = fail_all
        self.sent: List[Dict[str, str]] = []
        self.attempts: List[str] = []

    async def send(self, to, from_address, subject, text, html):
        self.attempts.append(to)
        if self.fail_all or to in self.failing_recipients:
            raise TransportError(f"Connection refused for {to}")
        self.sent.append(
            {"to": to, "from": from_address, "subject": subject, "text": text, "html": html}
        )

    def sent_to(self, address: str) -> List[Dict[str, str]]:
        return [message for message in self.sent if message["to"] == address]


# Test database setup
@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def inventory_store(session_factory) -> SqlInventoryStore:
    return SqlInventoryStore(session_factory)


@pytest.fixture
def preference_store(session_factory) -> SqlPreferenceStore:
    return SqlPreferenceStore(session_factory)


@pytest.fixture
def code_store(session_factory) -> SqlCodeStore:
    return SqlCodeStore(session_factory)


@pytest.fixture
def account_store(session_factory) -> SqlAccountStore:
    return SqlAccountStore(session_factory)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def gateway(transport) -> NotificationDeliveryGateway:
    """Gateway with fallback disabled so transport failures are visible."""
    return NotificationDeliveryGateway(
        transport=transport,
        from_address="notifications@foodexpiry.app",
        fallback_enabled=False,
        timeout_seconds=1.0,
        app_name="FoodExpiry",
        app_url="https://foodexpiry.app",
    )


# Test data factories
@pytest.fixture
def create_user(db_session: AsyncSession):
    """Factory creating a user with a username derived from the email."""

    async def _create(email: str, username: Optional[str] = None) -> User:
        user = User(username=username or email.split("@")[0], email=email, is_verified=True)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create


@pytest.fixture
def create_item(db_session: AsyncSession):
    async def _create(
        user: User,
        name: str,
        expiration_date: date,
        quantity: int = 1,
        unit: str = "items",
    ) -> PerishableItem:
        item = PerishableItem(
            user_id=user.id,
            name=name,
            quantity=quantity,
            unit=unit,
            expiration_date=expiration_date,
        )
        db_session.add(item)
        await db_session.commit()
        await db_session.refresh(item)
        return item

    return _create


@pytest.fixture
def create_preference(db_session: AsyncSession):
    async def _create(
        user: User,
        frequency: ExpirationFrequency = ExpirationFrequency.DAILY,
        alerts_enabled: bool = True,
        weekly_summary_enabled: bool = False,
        email_delivery_enabled: bool = True,
        email_address=ACCOUNT_EMAIL,
    ) -> NotificationPreference:
        preference = NotificationPreference(
            user_id=user.id,
            expiration_alerts_enabled=alerts_enabled,
            expiration_frequency=frequency,
            weekly_summary_enabled=weekly_summary_enabled,
            email_delivery_enabled=email_delivery_enabled,
            email_address=user.email if email_address is ACCOUNT_EMAIL else email_address,
        )
        db_session.add(preference)
        await db_session.commit()
        await db_session.refresh(preference)
        return preference

    return _create
