from typing import List, Optional
from datetime import datetime, date
from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Text,
    ForeignKey,
    Enum,
    Index,
    func,
    CheckConstraint,
    DateTime,
    Date,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import enum


class Base(DeclarativeBase):
    pass


# Enums
class ExpirationFrequency(enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


# Models
class User(Base, AuditMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )  # RFC 5321 max length
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    items: Mapped[List["PerishableItem"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    notification_preference: Mapped[Optional["NotificationPreference"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class PerishableItem(Base):
    __tablename__ = "food_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), default="items", nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_food_items_quantity_non_negative"),
        Index("ix_food_items_user_expiration", "user_id", "expiration_date"),
    )

    def __repr__(self):
        return f"<PerishableItem(id={self.id}, name={self.name}, expiration_date={self.expiration_date})>"


class VerificationCode(Base, AuditMixin):
    __tablename__ = "verification_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # One outstanding code per email; reissue replaces the row
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self):
        return f"<VerificationCode(email={self.email}, expires_at={self.expires_at}, consumed={self.consumed})>"


class NotificationPreference(Base, AuditMixin):
    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    expiration_alerts_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    expiration_frequency: Mapped[ExpirationFrequency] = mapped_column(
        Enum(ExpirationFrequency),
        default=ExpirationFrequency.WEEKLY,
        nullable=False,
    )
    weekly_summary_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    email_delivery_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    email_address: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    last_notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="notification_preference")

    def __repr__(self):
        return f"<NotificationPreference(user_id={self.user_id}, frequency={self.expiration_frequency})>"
