from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from foodexpiry.db.models import (
    NotificationPreference,
    PerishableItem,
    User,
    VerificationCode,
)
from foodexpiry.schemas.notification_schemas import NotificationKind


class InventoryStore(ABC):
    """Read-only view of users' perishable items."""

    @abstractmethod
    async def expiring_items(
        self, user_id: int, days_threshold: int, today: date
    ) -> List[PerishableItem]:
        """Unconsumed items expiring on or before ``today + days_threshold``, expired ones included."""

    @abstractmethod
    async def all_items(self, user_id: int) -> List[PerishableItem]:
        """All unconsumed items of a user."""


class PreferenceStore(ABC):
    @abstractmethod
    async def get(self, user_id: int) -> Optional[NotificationPreference]:
        pass

    @abstractmethod
    async def get_or_create_default(
        self, user_id: int, account_email: str
    ) -> NotificationPreference:
        """Return the user's preferences, creating the defaults on first access."""

    @abstractmethod
    async def update_last_notified(
        self, preference_id: int, timestamp: datetime
    ) -> None:
        pass

    @abstractmethod
    async def list_matching(self, kind: NotificationKind) -> List[NotificationPreference]:
        """Preferences of every user who should receive ``kind``."""


class CodeStore(ABC):
    @abstractmethod
    async def get(self, email: str) -> Optional[VerificationCode]:
        pass

    @abstractmethod
    async def put(self, record: VerificationCode) -> VerificationCode:
        pass

    @abstractmethod
    async def delete(self, email: str) -> bool:
        pass

    @abstractmethod
    async def consume(self, email: str, code: str, now: datetime) -> Optional[str]:
        """
        Atomically mark the matching live code consumed.

        Returns the payload when this call won the redemption, otherwise None.
        """

    @abstractmethod
    async def purge_stale(self, now: datetime) -> int:
        """Delete expired or consumed records and return how many were removed."""


class AccountStore(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        pass
