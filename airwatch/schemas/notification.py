"""Pydantic models for notification preference, history and dispatch endpoints."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from airwatch.db.models.notification import NotificationCategory
from airwatch.schemas.base import APIModel
from airwatch.services.scheduler import Outcome, TickStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class PreferenceFields(APIModel):
    """Optional preference fields accepted on create and update."""

    enabled: Optional[bool] = None
    push_token: Optional[str] = Field(
        default=None,
        max_length=512,
        validation_alias=AliasChoices("pushToken", "fcmToken", "push_token"),
    )
    notification_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    threshold: Optional[int] = Field(default=None, ge=0, le=1000)
    sound_enabled: Optional[bool] = None
    notify_on_threshold_crossed: Optional[bool] = None
    notify_on_improvement: Optional[bool] = None
    notify_on_worsening: Optional[bool] = None
    daily_summary: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator(
        "enabled",
        "notification_time",
        "threshold",
        "sound_enabled",
        "notify_on_threshold_crossed",
        "notify_on_improvement",
        "notify_on_worsening",
        "daily_summary",
    )
    @classmethod
    def reject_explicit_null(cls, value):
        # Omit a field to keep it; only pushToken may be cleared with null
        if value is None:
            raise ValueError("Field may not be null")
        return value

    def changes(self) -> dict[str, Any]:
        """Return only the fields the client actually sent, keyed by attribute name."""

        return self.model_dump(exclude_unset=True, exclude={"user_id"})


class PreferenceCreate(PreferenceFields):
    """Body of ``POST /notifications/preferences``."""

    user_id: Optional[str] = Field(default=None, max_length=64)


class PreferenceUpdate(PreferenceFields):
    """Body of ``PUT /notifications/preferences``."""


class PreferenceRead(APIModel):
    id: int
    user_id: str
    enabled: bool
    push_token: Optional[str]
    notification_time: str
    threshold: int
    sound_enabled: bool
    notify_on_threshold_crossed: bool
    notify_on_improvement: bool
    notify_on_worsening: bool
    daily_summary: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryRead(APIModel):
    id: uuid.UUID
    user_id: str
    title: str
    body: str
    aqi: float
    category: NotificationCategory
    read: bool
    sent_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryMarkReadResponse(APIModel):
    success: bool = True


class NotificationTestRequest(APIModel):
    user_id: Optional[str] = Field(default=None, max_length=64)

    model_config = ConfigDict(extra="forbid")


class ComposedRead(APIModel):
    title: str
    body: str
    category: NotificationCategory
    data: dict[str, str]

    model_config = ConfigDict(from_attributes=True)


class NotificationTestResponse(APIModel):
    """Result of a synchronous test send."""

    success: bool
    message_id: Optional[str] = None
    history_id: Optional[uuid.UUID] = None
    notification: ComposedRead


class UserOutcomeRead(APIModel):
    user_id: str
    outcome: Outcome
    category: Optional[str] = None
    history_id: Optional[str] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TickReportRead(APIModel):
    """Serialized scheduler tick report."""

    status: TickStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    reading_value: Optional[float] = None
    considered: int
    fired: int
    skipped: int
    duplicates: int
    errored: int
    outcomes: list[UserOutcomeRead] = Field(default_factory=list)
    errors: list[dict[str, str]] = Field(default_factory=list)
    abort_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ScheduleCheckResponse(APIModel):
    message: str = "Notification schedule check completed"
    current_aqi: float
    current_time: datetime
    users_to_notify: int
    total_users: int

    model_config = ConfigDict(from_attributes=True)
