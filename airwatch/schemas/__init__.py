"""Pydantic schemas package."""

from airwatch.schemas.notification import (
    ComposedRead,
    HistoryMarkReadResponse,
    HistoryRead,
    PreferenceCreate,
    PreferenceRead,
    PreferenceUpdate,
    ScheduleCheckResponse,
    NotificationTestRequest,
    NotificationTestResponse,
    TickReportRead,
)
from airwatch.schemas.reading import ReadingRead
from airwatch.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    "ComposedRead",
    "HistoryMarkReadResponse",
    "HistoryRead",
    "PreferenceCreate",
    "PreferenceRead",
    "PreferenceUpdate",
    "ReadingRead",
    "ScheduleCheckResponse",
    "NotificationTestRequest",
    "NotificationTestResponse",
    "TickReportRead",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
