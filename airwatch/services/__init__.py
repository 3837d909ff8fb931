"""Service layer package."""

from airwatch.services.dispatcher import Dispatcher, DispatchResult, DispatchStatus
from airwatch.services.notification_store import NotificationStore
from airwatch.services.scheduler import NotificationScheduler, TickReport
from airwatch.services.users import UserService

__all__ = [
    "DispatchResult",
    "DispatchStatus",
    "Dispatcher",
    "NotificationScheduler",
    "NotificationStore",
    "TickReport",
    "UserService",
]
