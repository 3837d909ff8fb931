"""Notification preference and delivery history models."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from airwatch.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationCategory(str, enum.Enum):
    """Closed set of notification kinds stored in history."""

    ALERT = "alert"
    IMPROVEMENT = "improvement"
    WORSENING = "worsening"
    SUMMARY = "summary"


class NotificationPreference(Base):
    """One alerting configuration per user, upserted by user id."""

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)

    enabled = Column(Boolean, nullable=False, default=True)
    push_token = Column(String(512))
    notification_time = Column(String(5), nullable=False, default="08:00")  # "HH:MM"
    threshold = Column(Integer, nullable=False, default=150)
    sound_enabled = Column(Boolean, nullable=False, default=True)

    # Independent gates
    notify_on_threshold_crossed = Column(Boolean, nullable=False, default=True)
    notify_on_improvement = Column(Boolean, nullable=False, default=True)
    notify_on_worsening = Column(Boolean, nullable=False, default=True)
    daily_summary = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def touch(self, moment: datetime | None = None) -> None:
        """Refresh the modification timestamp."""

        self.updated_at = moment or utcnow()


class NotificationHistory(Base):
    """Append-only log of dispatched notifications."""

    __tablename__ = "notification_history"
    __table_args__ = (
        CheckConstraint(
            "category IN ('alert', 'improvement', 'worsening', 'summary')",
            name="category_allowed",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)  # matches notification_preferences.user_id, no FK

    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    aqi = Column(Float, nullable=False)
    category = Column(String(16), nullable=False)
    read = Column(Boolean, nullable=False, default=False)

    # Dedup key for scheduled sends: "{user_id}:{category}:{window bucket}"
    dispatch_key = Column(String(160), unique=True)

    sent_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def mark_read(self) -> bool:
        """Flip ``read`` once; return ``True`` if the flag changed."""

        if self.read:
            return False
        self.read = True
        return True
