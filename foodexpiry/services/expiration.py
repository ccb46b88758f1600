from datetime import date
from typing import Iterable, List, Tuple

from foodexpiry.config.settings import settings
from foodexpiry.db.models import PerishableItem
from foodexpiry.schemas.notification_schemas import ExpirationStatus, ItemWithStatus


def classify(
    today: date,
    expiration_date: date,
    expiring_soon_days: int = settings.EXPIRING_SOON_DAYS,
) -> Tuple[ExpirationStatus, int]:
    """
    Classify an expiration date relative to ``today``.

    Rules:
    - expiration_date on or before today: expired (same-day counts as expired)
    - 1 to ``expiring_soon_days`` days ahead: expiring-soon
    - further ahead: fresh

    Returns:
        (status, days_until_expiration) where the day count is expiration
        minus today and is negative for items already past their date.
    """
    days_until_expiration = (expiration_date - today).days

    if expiration_date <= today:
        return ExpirationStatus.EXPIRED, days_until_expiration
    if days_until_expiration <= expiring_soon_days:
        return ExpirationStatus.EXPIRING_SOON, days_until_expiration
    return ExpirationStatus.FRESH, days_until_expiration


def classify_items(
    items: Iterable[PerishableItem],
    today: date,
    expiring_soon_days: int = settings.EXPIRING_SOON_DAYS,
) -> List[ItemWithStatus]:
    """Attach a status to every item using one ``today`` for the whole batch.

    Consumed items (quantity 0) are dropped.
    """
    classified = []
    for item in items:
        if item.quantity <= 0:
            continue
        status, days = classify(today, item.expiration_date, expiring_soon_days)
        classified.append(
            ItemWithStatus(
                id=item.id,
                user_id=item.user_id,
                name=item.name,
                quantity=item.quantity,
                unit=item.unit,
                expiration_date=item.expiration_date,
                status=status,
                days_until_expiration=days,
            )
        )
    return classified


def needs_attention(items: Iterable[ItemWithStatus]) -> List[ItemWithStatus]:
    """Items that belong in a digest: expired or expiring soon."""
    return [item for item in items if item.status != ExpirationStatus.FRESH]


def split_by_status(
    items: Iterable[ItemWithStatus],
) -> Tuple[List[ItemWithStatus], List[ItemWithStatus], List[ItemWithStatus]]:
    """Partition items into (expired, expiring_soon, fresh), keeping input order."""
    expired, expiring_soon, fresh = [], [], []
    for item in items:
        if item.status == ExpirationStatus.EXPIRED:
            expired.append(item)
        elif item.status == ExpirationStatus.EXPIRING_SOON:
            expiring_soon.append(item)
        else:
            fresh.append(item)
    return expired, expiring_soon, fresh
