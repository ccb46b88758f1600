import pytest
from datetime import date, timedelta
from types import SimpleNamespace

from foodexpiry.schemas.notification_schemas import ExpirationStatus
from foodexpiry.services.expiration import (
    classify,
    classify_items,
    needs_attention,
    split_by_status,
)

TODAY = date(2026, 10, 18)


def _item(item_id, expiration_date, quantity=1, name=None):
    return SimpleNamespace(
        id=item_id,
        user_id=1,
        name=name or f"item-{item_id}",
        quantity=quantity,
        unit="items",
        expiration_date=expiration_date,
    )


class TestClassify:
    """Test the expired / expiring-soon / fresh boundaries."""

    def test_same_day_is_expired(self):
        """An item expiring today already counts as expired."""
        assert classify(TODAY, TODAY) == (ExpirationStatus.EXPIRED, 0)

    def test_past_dates_are_expired_with_negative_days(self):
        assert classify(TODAY, TODAY - timedelta(days=4)) == (ExpirationStatus.EXPIRED, -4)

    @pytest.mark.parametrize("days", [1, 2, 3])
    def test_one_to_three_days_ahead_is_expiring_soon(self, days):
        status, delta = classify(TODAY, TODAY + timedelta(days=days))
        assert status == ExpirationStatus.EXPIRING_SOON
        assert delta == days

    @pytest.mark.parametrize("days", [4, 10, 365])
    def test_more_than_three_days_ahead_is_fresh(self, days):
        assert classify(TODAY, TODAY + timedelta(days=days)) == (ExpirationStatus.FRESH, days)

    def test_custom_expiring_soon_window(self):
        assert classify(TODAY, TODAY + timedelta(days=5), expiring_soon_days=7)[0] == (
            ExpirationStatus.EXPIRING_SOON
        )

    def test_month_boundary_counts_calendar_days(self):
        assert classify(date(2026, 2, 27), date(2026, 3, 2)) == (ExpirationStatus.EXPIRING_SOON, 3)


class TestClassifyItems:
    """Test batch classification and the digest filters built on it."""

    def test_consumed_items_are_dropped(self):
        items = [_item(1, TODAY), _item(2, TODAY, quantity=0)]

        classified = classify_items(items, TODAY)

        assert [item.id for item in classified] == [1]

    def test_statuses_use_the_same_today(self):
        items = [
            _item(1, TODAY - timedelta(days=1)),
            _item(2, TODAY + timedelta(days=2)),
            _item(3, TODAY + timedelta(days=10)),
        ]

        classified = classify_items(items, TODAY)

        assert [(item.status, item.days_until_expiration) for item in classified] == [
            (ExpirationStatus.EXPIRED, -1),
            (ExpirationStatus.EXPIRING_SOON, 2),
            (ExpirationStatus.FRESH, 10),
        ]

    def test_needs_attention_drops_fresh_items(self):
        classified = classify_items(
            [_item(1, TODAY + timedelta(days=2)), _item(2, TODAY + timedelta(days=10))], TODAY
        )

        assert [item.id for item in needs_attention(classified)] == [1]

    def test_split_by_status_keeps_order(self):
        classified = classify_items(
            [
                _item(1, TODAY + timedelta(days=8)),
                _item(2, TODAY),
                _item(3, TODAY + timedelta(days=1)),
                _item(4, TODAY - timedelta(days=2)),
            ],
            TODAY,
        )

        expired, expiring_soon, fresh = split_by_status(classified)

        assert [item.id for item in expired] == [2, 4]
        assert [item.id for item in expiring_soon] == [3]
        assert [item.id for item in fresh] == [1]

    def test_serializes_with_camel_case_status(self):
        item = classify_items([_item(1, TODAY + timedelta(days=2))], TODAY)[0]

        dumped = item.model_dump(by_alias=True)

        assert dumped["status"] == "expiring-soon"
        assert dumped["daysUntilExpiration"] == 2
        assert dumped["expirationDate"] == "2026-10-20"
