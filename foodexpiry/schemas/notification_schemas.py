import enum
from datetime import date, datetime
from typing import List, Optional
from pydantic import Field

from foodexpiry.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class ExpirationStatus(str, enum.Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring-soon"
    FRESH = "fresh"


class NotificationKind(str, enum.Enum):
    DAILY_DIGEST = "daily_digest"
    WEEKLY_DIGEST = "weekly_digest"
    WEEKLY_SUMMARY = "weekly_summary"

    @property
    def is_digest(self) -> bool:
        return self in (NotificationKind.DAILY_DIGEST, NotificationKind.WEEKLY_DIGEST)


class OutcomeStatus(str, enum.Enum):
    SENT = "sent"
    DELIVERY_FAILED = "delivery_failed"
    NOTHING_TO_SEND = "nothing_to_send"
    ERROR = "error"


class ItemWithStatus(BaseModel):
    id: int = Field(..., description="Item ID")
    user_id: int = Field(..., description="Owning user ID")
    name: str = Field(..., description="Item name")
    quantity: int = Field(..., ge=0, description="Remaining quantity")
    unit: str = Field(..., description="Quantity unit")
    expiration_date: date = Field(..., description="Expiration calendar date")
    status: ExpirationStatus = Field(..., description="Derived expiration status")
    days_until_expiration: int = Field(
        ..., description="Expiration minus today in days, negative once expired"
    )


class UserNotificationOutcome(BaseModel):
    user_id: int = Field(..., description="User the cycle ran for")
    kind: NotificationKind = Field(..., description="Notification kind")
    status: OutcomeStatus = Field(..., description="What happened for this user")
    item_count: int = Field(0, description="Items included in the message")
    watermark_updated: bool = Field(
        False, description="Whether last_notified_at was advanced"
    )
    error: Optional[str] = Field(None, description="Error message if processing failed")


class FanoutReport(BaseModel):
    kind: NotificationKind = Field(..., description="Notification kind")
    run_id: str = Field(..., description="Correlation ID for the pass")
    started_at: datetime = Field(..., description="The single 'now' used for the pass")
    outcomes: List[UserNotificationOutcome] = Field(default_factory=list)

    @property
    def recipients(self) -> List[int]:
        return sorted(outcome.user_id for outcome in self.outcomes)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)


class TestNotificationResult(BaseModel):
    __test__ = False  # keep pytest from collecting this as a test class

    success: bool = Field(..., description="Whether the test email went out")
    used_fallback: bool = Field(
        False, description="Whether the fallback sink stood in for the transport"
    )
    message: str = Field(..., description="Human-readable outcome")


class TriggerResult(BaseModel):
    success: bool = Field(..., description="Whether the notification went out")
    item_count: int = Field(0, description="Items included in the message")
    message: str = Field(..., description="Human-readable outcome")
