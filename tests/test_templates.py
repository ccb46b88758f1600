from datetime import date, timedelta

from foodexpiry.schemas.notification_schemas import ExpirationStatus, ItemWithStatus
from foodexpiry.services.email.templates import (
    describe_days,
    render_expiration_digest,
    render_password_reset_code,
    render_test_notification,
    render_verification_code,
    render_weekly_summary,
)

TODAY = date(2026, 10, 18)


def _item(item_id, name, days, quantity=1, unit="items"):
    if days <= 0:
        status = ExpirationStatus.EXPIRED
    elif days <= 3:
        status = ExpirationStatus.EXPIRING_SOON
    else:
        status = ExpirationStatus.FRESH
    return ItemWithStatus(
        id=item_id,
        user_id=1,
        name=name,
        quantity=quantity,
        unit=unit,
        expiration_date=TODAY + timedelta(days=days),
        status=status,
        days_until_expiration=days,
    )


class TestDescribeDays:
    def test_wording(self):
        assert describe_days(0) == "expires today"
        assert describe_days(1) == "expires in 1 day"
        assert describe_days(3) == "expires in 3 days"
        assert describe_days(-1) == "expired 1 day ago"
        assert describe_days(-5) == "expired 5 days ago"


class TestExpirationDigest:
    """Test the digest subject and body."""

    def test_subject_counts_and_item_lines(self):
        email = render_expiration_digest(
            [_item(1, "Milk", -2, 2, "cartons")], [_item(2, "Yogurt", 1), _item(3, "Bread", 3)]
        )

        assert email.subject == "FoodExpiry Alert: 1 expired and 2 expiring soon"
        assert "EXPIRED ITEMS (1):" in email.text
        assert "- Milk - expired 2 days ago (2 cartons)" in email.text
        assert "EXPIRING SOON (2):" in email.text
        assert "- Yogurt - expires in 1 day (1 items)" in email.text
        assert "https://foodexpiry.app" in email.text

    def test_empty_section_is_omitted(self):
        email = render_expiration_digest([], [_item(2, "Yogurt", 1)])

        assert "EXPIRED ITEMS" not in email.text
        assert "Expired Items" not in email.html

    def test_html_escapes_item_names(self):
        email = render_expiration_digest([_item(1, "<script>alert(1)</script>", 0)], [])

        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html

    def test_rendering_is_deterministic(self):
        expired, soon = [_item(1, "Milk", -1)], [_item(2, "Yogurt", 2)]

        assert render_expiration_digest(expired, soon) == render_expiration_digest(expired, soon)


class TestWeeklySummary:
    def test_counts_and_dated_subject(self):
        items = [_item(1, "Milk", -1), _item(2, "Yogurt", 2), _item(3, "Rice", 30), _item(4, "Oats", 60)]

        email = render_weekly_summary(items, TODAY)

        assert email.subject == "Your Weekly FoodExpiry Summary - 2026-10-18"
        assert "- Fresh Items: 2" in email.text
        assert "- Expiring Soon: 1" in email.text
        assert "- Expired: 1" in email.text
        assert "You currently have 4 items in your inventory." in email.text
        assert "ACTION NEEDED: You have 1 items expiring soon." in email.text

    def test_empty_inventory(self):
        email = render_weekly_summary([], TODAY)

        assert "You currently have 0 items in your inventory." in email.text
        assert "ACTION NEEDED" not in email.text


class TestOtherEmails:
    def test_test_notification_without_items(self):
        email = render_test_notification([], [])

        assert email.subject == "FoodExpiry Test Notification"
        assert "Great job managing your food!" in email.text

    def test_test_notification_lists_items(self):
        email = render_test_notification([_item(1, "Milk", -3)], [])

        assert "- Milk - expired 3 days ago (1 items)" in email.text
        assert "Great job" not in email.text

    def test_verification_code(self):
        email = render_verification_code("482913", 10)

        assert email.subject == "482913 is your FoodExpiry verification code"
        assert email.text == (
            "Your verification code for FoodExpiry is: 482913. "
            "This code will expire in 10 minutes."
        )
        assert "482913" in email.html

    def test_password_reset_code(self):
        email = render_password_reset_code("482913", 15)

        assert "482913" in email.text
        assert "15 minutes" in email.text
        assert email.subject == "FoodExpiry password reset code"
