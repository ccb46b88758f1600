from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodexpiry.db.models import (
    ExpirationFrequency,
    NotificationPreference,
    PerishableItem,
    User,
    VerificationCode,
)
from foodexpiry.schemas.notification_schemas import NotificationKind
from foodexpiry.stores.base import AccountStore, CodeStore, InventoryStore, PreferenceStore
from foodexpiry.utils.datetime_utils import to_naive_utc
from foodexpiry.utils.errors import StorageError
from foodexpiry.utils.logging import get_logger

logger = get_logger()


class _SqlStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _storage_error(action: str, error: SQLAlchemyError) -> StorageError:
        logger.error(f"Database error while trying to {action}: {error}")
        return StorageError(f"Failed to {action}: {error}")


class SqlInventoryStore(_SqlStore, InventoryStore):
    async def expiring_items(
        self, user_id: int, days_threshold: int, today: date
    ) -> List[PerishableItem]:
        threshold = today + timedelta(days=days_threshold)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PerishableItem)
                    .where(
                        and_(
                            PerishableItem.user_id == user_id,
                            PerishableItem.quantity > 0,
                            PerishableItem.expiration_date <= threshold,
                        )
                    )
                    .order_by(PerishableItem.expiration_date, PerishableItem.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error("load expiring items", e) from e

    async def all_items(self, user_id: int) -> List[PerishableItem]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PerishableItem)
                    .where(
                        and_(
                            PerishableItem.user_id == user_id,
                            PerishableItem.quantity > 0,
                        )
                    )
                    .order_by(PerishableItem.expiration_date, PerishableItem.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error("load inventory", e) from e


class SqlPreferenceStore(_SqlStore, PreferenceStore):
    async def get(self, user_id: int) -> Optional[NotificationPreference]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(NotificationPreference).where(
                        NotificationPreference.user_id == user_id
                    )
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("load notification preferences", e) from e

    async def get_or_create_default(
        self, user_id: int, account_email: str
    ) -> NotificationPreference:
        existing = await self.get(user_id)
        if existing is not None:
            return existing

        preference = NotificationPreference(
            user_id=user_id,
            expiration_alerts_enabled=True,
            expiration_frequency=ExpirationFrequency.WEEKLY,
            weekly_summary_enabled=False,
            email_delivery_enabled=True,
            email_address=account_email,
        )
        try:
            async with self._session_factory() as session:
                session.add(preference)
                await session.commit()
                await session.refresh(preference)
            logger.info(f"Created default notification preferences for user {user_id}")
            return preference
        except IntegrityError:
            # A concurrent request created the row first
            created = await self.get(user_id)
            if created is None:
                raise StorageError(
                    f"Failed to create notification preferences for user {user_id}"
                )
            return created
        except SQLAlchemyError as e:
            raise self._storage_error("create notification preferences", e) from e

    async def update_last_notified(
        self, preference_id: int, timestamp: datetime
    ) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(NotificationPreference)
                    .where(NotificationPreference.id == preference_id)
                    .values(last_notified_at=to_naive_utc(timestamp))
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error("update last notified timestamp", e) from e

    async def list_matching(self, kind: NotificationKind) -> List[NotificationPreference]:
        deliverable = and_(
            NotificationPreference.email_delivery_enabled == True,
            NotificationPreference.email_address.is_not(None),
            NotificationPreference.email_address != "",
        )
        if kind == NotificationKind.WEEKLY_SUMMARY:
            criteria = and_(
                deliverable, NotificationPreference.weekly_summary_enabled == True
            )
        else:
            frequency = (
                ExpirationFrequency.DAILY
                if kind == NotificationKind.DAILY_DIGEST
                else ExpirationFrequency.WEEKLY
            )
            criteria = and_(
                deliverable,
                NotificationPreference.expiration_alerts_enabled == True,
                NotificationPreference.expiration_frequency == frequency,
            )

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(NotificationPreference)
                    .where(criteria)
                    .order_by(NotificationPreference.user_id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error("list notification preferences", e) from e


class SqlCodeStore(_SqlStore, CodeStore):
    async def get(self, email: str) -> Optional[VerificationCode]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(VerificationCode).where(VerificationCode.email == email)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("load verification code", e) from e

    async def put(self, record: VerificationCode) -> VerificationCode:
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
                return record
        except SQLAlchemyError as e:
            raise self._storage_error("store verification code", e) from e

    async def delete(self, email: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(VerificationCode).where(VerificationCode.email == email)
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise self._storage_error("delete verification code", e) from e

    async def consume(self, email: str, code: str, now: datetime) -> Optional[str]:
        now = to_naive_utc(now)
        try:
            async with self._session_factory() as session:
                # The guarded UPDATE is the check-and-set; only one caller can flip consumed
                result = await session.execute(
                    update(VerificationCode)
                    .where(
                        and_(
                            VerificationCode.email == email,
                            VerificationCode.code == code,
                            VerificationCode.consumed == False,
                            VerificationCode.expires_at >= now,
                        )
                    )
                    .values(consumed=True)
                )
                if result.rowcount != 1:
                    await session.rollback()
                    return None

                payload = await session.scalar(
                    select(VerificationCode.payload).where(
                        VerificationCode.email == email
                    )
                )
                await session.commit()
                return payload
        except SQLAlchemyError as e:
            raise self._storage_error("redeem verification code", e) from e

    async def purge_stale(self, now: datetime) -> int:
        now = to_naive_utc(now)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(VerificationCode).where(
                        or_(
                            VerificationCode.consumed == True,
                            VerificationCode.expires_at < now,
                        )
                    )
                )
                await session.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise self._storage_error("purge verification codes", e) from e


class SqlAccountStore(_SqlStore, AccountStore):
    async def get_user(self, user_id: int) -> Optional[User]:
        try:
            async with self._session_factory() as session:
                return await session.get(User, user_id)
        except SQLAlchemyError as e:
            raise self._storage_error("load user", e) from e

    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User).where(User.email == email))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("load user", e) from e

    async def get_user_by_username(self, username: str) -> Optional[User]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(User).where(User.username == username)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("load user", e) from e
