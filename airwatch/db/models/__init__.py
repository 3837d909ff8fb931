"""Database models package."""
from airwatch.db.models.notification import (
    NotificationCategory,
    NotificationHistory,
    NotificationPreference,
)
from airwatch.db.models.user import User

__all__ = [
    "NotificationCategory",
    "NotificationHistory",
    "NotificationPreference",
    "User",
]
