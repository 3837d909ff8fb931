"""Pure notification decision and rendering logic."""

from airwatch.core.notifications.composer import ComposedNotification, compose
from airwatch.core.notifications.evaluator import (
    NO_FIRE,
    Decision,
    evaluate,
    matches_window,
    parse_notification_time,
    window_bucket,
)

__all__ = [
    "ComposedNotification",
    "Decision",
    "NO_FIRE",
    "compose",
    "evaluate",
    "matches_window",
    "parse_notification_time",
    "window_bucket",
]
