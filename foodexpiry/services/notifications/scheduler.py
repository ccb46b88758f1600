"""
Scheduled expiration notifications.

Three cron triggers (daily digest, weekly digest, weekly summary) each run a
fan-out pass over the users whose preferences match the trigger. Every user is
processed independently:

1. load the user's items (expiring within the digest threshold, or the whole
   inventory for the summary)
2. classify them with one "today" shared by the whole pass
3. digests keep only expired and expiring-soon items and skip sending when
   nothing is left
4. send through the delivery gateway
5. advance ``last_notified_at`` whatever the delivery result was

A failure for one user is logged with the user id and recorded as an ERROR
outcome; it never stops the pass. A user whose stored address is unusable
is also an ERROR outcome, but their watermark still advances. The same
per-user procedure backs the on-demand actions used by the API layer.
"""

import asyncio
import uuid
from datetime import date, datetime
from functools import partial
from typing import Callable, Dict, List, Optional, Tuple

from foodexpiry.config.settings import settings
from foodexpiry.db.models import NotificationPreference, User
from foodexpiry.schemas.notification_schemas import (
    FanoutReport,
    ItemWithStatus,
    NotificationKind,
    OutcomeStatus,
    TestNotificationResult,
    TriggerResult,
    UserNotificationOutcome,
)
from foodexpiry.services.email.delivery_gateway import (
    EMAIL_PATTERN,
    NotificationDeliveryGateway,
)
from foodexpiry.services.expiration import classify_items, needs_attention, split_by_status
from foodexpiry.services.notifications.triggers import CronTrigger
from foodexpiry.stores.base import AccountStore, InventoryStore, PreferenceStore
from foodexpiry.utils.datetime_utils import local_today, utc_now
from foodexpiry.utils.errors import (
    FoodExpiryError,
    PreferenceNotConfiguredError,
    UserNotFoundError,
)
from foodexpiry.utils.logging import get_logger

logger = get_logger()


def default_schedules() -> Dict[NotificationKind, str]:
    return {
        NotificationKind.DAILY_DIGEST: settings.DAILY_DIGEST_CRON,
        NotificationKind.WEEKLY_DIGEST: settings.WEEKLY_DIGEST_CRON,
        NotificationKind.WEEKLY_SUMMARY: settings.WEEKLY_SUMMARY_CRON,
    }


class NotificationScheduler:
    def __init__(
        self,
        inventory_store: InventoryStore,
        preference_store: PreferenceStore,
        account_store: AccountStore,
        gateway: NotificationDeliveryGateway,
        schedules: Optional[Dict[NotificationKind, str]] = None,
        digest_days_threshold: int = settings.DIGEST_DAYS_THRESHOLD,
        expiring_soon_days: int = settings.EXPIRING_SOON_DAYS,
        concurrency: int = settings.FANOUT_CONCURRENCY,
        timezone: str = settings.TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.inventory_store = inventory_store
        self.preference_store = preference_store
        self.account_store = account_store
        self.gateway = gateway
        self.schedules = schedules or default_schedules()
        self.digest_days_threshold = digest_days_threshold
        self.expiring_soon_days = expiring_soon_days
        self.concurrency = concurrency
        self.timezone = timezone
        self.clock = clock
        self._triggers: Dict[NotificationKind, CronTrigger] = {}
        self._stopped: List[CronTrigger] = []

    # Lifecycle

    @property
    def triggers(self) -> Dict[NotificationKind, CronTrigger]:
        return dict(self._triggers)

    def initialize(self) -> None:
        """Register one trigger per notification kind. Must run inside the event loop."""
        if self._triggers:
            logger.warning("Notification scheduler already initialized")
            return

        logger.info("Initializing notification scheduler")
        for kind, expression in self.schedules.items():
            trigger = CronTrigger(
                name=kind.value,
                expression=expression,
                callback=partial(self.run_fanout, kind),
                timezone=self.timezone,
            )
            trigger.start()
            self._triggers[kind] = trigger
        logger.info("All notification schedules initialized")

    def stop(self) -> None:
        """Cancel pending triggers. Passes already running are left to finish."""
        if not self._triggers:
            return
        for trigger in self._triggers.values():
            trigger.cancel()
        self._stopped.extend(self._triggers.values())
        self._triggers.clear()
        logger.info("All notification schedules stopped")

    async def wait_in_flight(self) -> None:
        for trigger in self._stopped:
            await trigger.wait_in_flight()

    # Fan-out

    async def run_fanout(
        self, kind: NotificationKind, now: Optional[datetime] = None
    ) -> FanoutReport:
        """Run one pass for ``kind`` and return the outcome of every matched user."""
        now = now or self.clock()
        today = local_today(now, self.timezone)
        run_id = f"{kind.value}-{uuid.uuid4().hex[:8]}"
        run_logger = logger.bind(request_id=run_id)

        run_logger.info(f"Processing {kind.value} notifications for {today}")
        preferences = await self.preference_store.list_matching(kind)
        run_logger.info(f"Found {len(preferences)} users for {kind.value}")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(preference: NotificationPreference) -> UserNotificationOutcome:
            async with semaphore:
                return await self._process_isolated(preference, kind, now, today, run_logger)

        outcomes = await asyncio.gather(*(guarded(p) for p in preferences))
        report = FanoutReport(kind=kind, run_id=run_id, started_at=now, outcomes=list(outcomes))

        run_logger.info(
            f"Finished {kind.value}: "
            f"sent={report.count(OutcomeStatus.SENT)} "
            f"nothing_to_send={report.count(OutcomeStatus.NOTHING_TO_SEND)} "
            f"delivery_failed={report.count(OutcomeStatus.DELIVERY_FAILED)} "
            f"errors={report.count(OutcomeStatus.ERROR)}"
        )
        return report

    async def _process_isolated(
        self,
        preference: NotificationPreference,
        kind: NotificationKind,
        now: datetime,
        today: date,
        run_logger,
    ) -> UserNotificationOutcome:
        try:
            try:
                return await self.process_user(preference, kind, now, today=today)
            except PreferenceNotConfiguredError as e:
                # A misconfigured user still closes the cycle
                run_logger.warning(
                    f"Skipping {kind.value} for user {preference.user_id}: {e.message}"
                )
                await self._advance_watermark(preference, now)
                return UserNotificationOutcome(
                    user_id=preference.user_id,
                    kind=kind,
                    status=OutcomeStatus.ERROR,
                    error=e.message,
                    watermark_updated=True,
                )
        except Exception as e:
            run_logger.opt(exception=e).error(
                f"Error processing {kind.value} for user {preference.user_id}: {e}"
            )
            return UserNotificationOutcome(
                user_id=preference.user_id,
                kind=kind,
                status=OutcomeStatus.ERROR,
                error=str(e),
            )

    async def process_user(
        self,
        preference: NotificationPreference,
        kind: NotificationKind,
        now: datetime,
        today: Optional[date] = None,
        days_threshold: Optional[int] = None,
    ) -> UserNotificationOutcome:
        """
        Run one notification cycle for a single user.

        The watermark is advanced even when nothing was sent or delivery
        failed: it marks the cycle as attempted, not the email as delivered.

        Raises:
            PreferenceNotConfiguredError: delivery is off or no address is set
            StorageError: a store call failed
        """
        address = self._delivery_address(preference)
        today = today or local_today(now, self.timezone)

        if kind.is_digest:
            threshold = self.digest_days_threshold if days_threshold is None else days_threshold
            items = await self._relevant_items(preference.user_id, threshold, today)
            if not items:
                status = OutcomeStatus.NOTHING_TO_SEND
                logger.info(f"No relevant expiring items for user {preference.user_id}")
            else:
                expired, expiring_soon, _ = split_by_status(items)
                sent = await self.gateway.send_expiration_digest(address, expired, expiring_soon)
                status = OutcomeStatus.SENT if sent else OutcomeStatus.DELIVERY_FAILED
        else:
            items = classify_items(
                await self.inventory_store.all_items(preference.user_id),
                today,
                self.expiring_soon_days,
            )
            sent = await self.gateway.send_weekly_summary(address, items, today)
            status = OutcomeStatus.SENT if sent else OutcomeStatus.DELIVERY_FAILED

        await self._advance_watermark(preference, now)

        logger.info(
            f"{kind.value} for user {preference.user_id}: {status.value} ({len(items)} items)"
        )
        return UserNotificationOutcome(
            user_id=preference.user_id,
            kind=kind,
            status=status,
            item_count=len(items),
            watermark_updated=True,
        )

    async def _advance_watermark(
        self, preference: NotificationPreference, now: datetime
    ) -> None:
        await self.preference_store.update_last_notified(preference.id, now)
        preference.last_notified_at = now

    async def _relevant_items(
        self, user_id: int, days_threshold: int, today: date
    ) -> List[ItemWithStatus]:
        """Expired and expiring-soon items within ``days_threshold`` days."""
        items = await self.inventory_store.expiring_items(user_id, days_threshold, today)
        # A wider on-demand window widens what counts as expiring soon
        horizon = max(self.expiring_soon_days, days_threshold)
        return needs_attention(classify_items(items, today, horizon))

    @staticmethod
    def _delivery_address(preference: NotificationPreference) -> str:
        address = (preference.email_address or "").strip()
        if not preference.email_delivery_enabled:
            raise PreferenceNotConfiguredError("Email notifications are disabled")
        if not address:
            raise PreferenceNotConfiguredError("No email address configured for notifications")
        if not EMAIL_PATTERN.match(address):
            raise PreferenceNotConfiguredError(
                "Invalid email address configured for notifications"
            )
        return address

    # On-demand actions

    async def _resolve_preference(self, user_id: int) -> Tuple[User, NotificationPreference]:
        user = await self.account_store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        preference = await self.preference_store.get_or_create_default(user.id, user.email)
        return user, preference

    async def send_test_notification(
        self, user_id: int, now: Optional[datetime] = None
    ) -> TestNotificationResult:
        """Email the user a test message listing what currently needs attention."""
        now = now or self.clock()
        try:
            _, preference = await self._resolve_preference(user_id)
            address = self._delivery_address(preference)
            items = await self._relevant_items(
                user_id, self.digest_days_threshold, local_today(now, self.timezone)
            )
        except FoodExpiryError as e:
            logger.warning(f"Test notification for user {user_id} not sent: {e.message}")
            return TestNotificationResult(success=False, message=e.message)

        expired, expiring_soon, _ = split_by_status(items)
        outcome = await self.gateway.send_test_notification(address, expired, expiring_soon)

        if outcome.used_fallback:
            message = "Email transport unavailable, test notification was logged instead"
        elif outcome.success:
            message = f"Test notification sent to {address}"
        else:
            message = f"Failed to send test notification: {outcome.error}"
        return TestNotificationResult(
            success=outcome.success, used_fallback=outcome.used_fallback, message=message
        )

    async def trigger_expiring_items_notification(
        self,
        user_id: int,
        days_threshold: int = settings.DIGEST_DAYS_THRESHOLD,
        now: Optional[datetime] = None,
    ) -> TriggerResult:
        return await self._trigger(
            user_id, NotificationKind.DAILY_DIGEST, now, days_threshold=days_threshold
        )

    async def trigger_weekly_summary(
        self, user_id: int, now: Optional[datetime] = None
    ) -> TriggerResult:
        return await self._trigger(user_id, NotificationKind.WEEKLY_SUMMARY, now)

    async def _trigger(
        self,
        user_id: int,
        kind: NotificationKind,
        now: Optional[datetime],
        days_threshold: Optional[int] = None,
    ) -> TriggerResult:
        now = now or self.clock()
        try:
            _, preference = await self._resolve_preference(user_id)
            outcome = await self.process_user(
                preference, kind, now, days_threshold=days_threshold
            )
        except FoodExpiryError as e:
            logger.warning(f"On-demand {kind.value} for user {user_id} failed: {e.message}")
            return TriggerResult(success=False, message=e.message)

        messages = {
            OutcomeStatus.SENT: f"Notification sent with {outcome.item_count} items",
            OutcomeStatus.NOTHING_TO_SEND: "No expiring items to notify about",
            OutcomeStatus.DELIVERY_FAILED: "Failed to send notification email",
        }
        return TriggerResult(
            success=outcome.status != OutcomeStatus.DELIVERY_FAILED,
            item_count=outcome.item_count,
            message=messages[outcome.status],
        )
