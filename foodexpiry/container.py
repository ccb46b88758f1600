from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from foodexpiry.config.settings import Settings, settings as default_settings
from foodexpiry.db.session import create_engine_for_url, create_session_factory
from foodexpiry.schemas.notification_schemas import NotificationKind
from foodexpiry.services.account_verification_service import AccountVerificationService
from foodexpiry.services.email.delivery_gateway import NotificationDeliveryGateway
from foodexpiry.services.email.transport import EmailTransport, SendGridTransport
from foodexpiry.services.notifications.scheduler import NotificationScheduler
from foodexpiry.services.verification_code_service import VerificationCodeService
from foodexpiry.stores.sql import (
    SqlAccountStore,
    SqlCodeStore,
    SqlInventoryStore,
    SqlPreferenceStore,
)
from foodexpiry.utils.logging import get_logger

logger = get_logger()


@dataclass
class Container:
    """Everything the process needs, built once at startup and passed around explicitly."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    inventory_store: SqlInventoryStore
    preference_store: SqlPreferenceStore
    code_store: SqlCodeStore
    account_store: SqlAccountStore
    transport: EmailTransport
    gateway: NotificationDeliveryGateway
    code_service: VerificationCodeService
    account_verification: AccountVerificationService
    scheduler: NotificationScheduler

    async def dispose(self) -> None:
        self.scheduler.stop()
        await self.engine.dispose()


def build_container(
    config: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    transport: Optional[EmailTransport] = None,
) -> Container:
    config = config or default_settings
    engine = engine or create_engine_for_url(str(config.DATABASE_URL))
    session_factory = create_session_factory(engine)

    inventory_store = SqlInventoryStore(session_factory)
    preference_store = SqlPreferenceStore(session_factory)
    code_store = SqlCodeStore(session_factory)
    account_store = SqlAccountStore(session_factory)

    transport = transport or SendGridTransport(
        api_key=config.SENDGRID_API_KEY,
        api_url=config.SENDGRID_API_URL,
        timeout=config.EMAIL_SEND_TIMEOUT_SECONDS,
    )
    if not transport.is_configured():
        logger.warning(
            "Email transport is not configured, "
            f"fallback delivery is {'on' if config.EMAIL_FALLBACK_ENABLED else 'off'}"
        )

    gateway = NotificationDeliveryGateway(
        transport=transport,
        from_address=config.EMAIL_FROM_ADDRESS,
        fallback_enabled=config.EMAIL_FALLBACK_ENABLED,
        timeout_seconds=config.EMAIL_SEND_TIMEOUT_SECONDS,
        app_name=config.NAME,
        app_url=config.APP_URL,
    )
    code_service = VerificationCodeService(
        code_store, ttl_minutes=config.VERIFICATION_CODE_TTL_MINUTES
    )
    scheduler = NotificationScheduler(
        inventory_store=inventory_store,
        preference_store=preference_store,
        account_store=account_store,
        gateway=gateway,
        schedules={
            NotificationKind.DAILY_DIGEST: config.DAILY_DIGEST_CRON,
            NotificationKind.WEEKLY_DIGEST: config.WEEKLY_DIGEST_CRON,
            NotificationKind.WEEKLY_SUMMARY: config.WEEKLY_SUMMARY_CRON,
        },
        digest_days_threshold=config.DIGEST_DAYS_THRESHOLD,
        expiring_soon_days=config.EXPIRING_SOON_DAYS,
        concurrency=config.FANOUT_CONCURRENCY,
        timezone=config.TIMEZONE,
    )

    return Container(
        settings=config,
        engine=engine,
        session_factory=session_factory,
        inventory_store=inventory_store,
        preference_store=preference_store,
        code_store=code_store,
        account_store=account_store,
        transport=transport,
        gateway=gateway,
        code_service=code_service,
        account_verification=AccountVerificationService(code_service, gateway, account_store),
        scheduler=scheduler,
    )
