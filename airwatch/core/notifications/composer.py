"""Render notification text and payload from a decision and a reading."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from airwatch.core.aqi import ReadingSnapshot, aqi_category, format_value, health_recommendations
from airwatch.db.models.notification import NotificationCategory

DEFAULT_ICON = "/icons/aqi-icon-192x192.png"
DEFAULT_URL = "/aqi-details"


@dataclass(frozen=True)
class ComposedNotification:
    """Everything the dispatcher needs to send and record one notification."""

    title: str
    body: str
    category: NotificationCategory
    value: float
    icon: str = DEFAULT_ICON
    sound_enabled: bool = True
    data: Dict[str, str] = field(default_factory=dict)


def _headline(category: NotificationCategory, value: str, *, is_test: bool) -> str:
    if is_test:
        return f"Test Notification: AQI {value}"
    if category is NotificationCategory.ALERT:
        return f"⚠️ AQI Alert: {value} exceeds your threshold!"
    if category is NotificationCategory.IMPROVEMENT:
        return f"Air quality improved: AQI {value}"
    if category is NotificationCategory.WORSENING:
        return f"Air quality worsening: AQI {value}"
    return f"Daily Summary: {value}"


def _body(category: NotificationCategory, label: str, recommendation: str, *, is_test: bool) -> str:
    if is_test:
        return f"This is a test notification. Current air quality is {label}. {recommendation}"
    if category is NotificationCategory.ALERT:
        return f"Current air quality is {label}. {recommendation}"
    return f"Air quality is currently {label}. {recommendation}"


def compose(
    category: NotificationCategory,
    reading: ReadingSnapshot,
    *,
    icon: str = DEFAULT_ICON,
    url: str = DEFAULT_URL,
    sound_enabled: bool = True,
    is_test: bool = False,
) -> ComposedNotification:
    """Build title, body and data payload for ``category``.

    Test notifications are always recorded as summaries.
    """
    if is_test:
        category = NotificationCategory.SUMMARY

    label, color = aqi_category(reading.value)
    recommendation = health_recommendations(reading.value)[0]
    value = format_value(reading.value)

    # FCM data payloads must be string to string
    data = {
        "aqi": value,
        "category": label,
        "color": color,
        "url": url,
        "timestamp": reading.timestamp.isoformat(),
        "notificationType": category.value,
    }
    if is_test:
        data["isTest"] = "true"

    return ComposedNotification(
        title=_headline(category, value, is_test=is_test),
        body=_body(category, label, recommendation, is_test=is_test),
        category=category,
        value=float(reading.value),
        icon=icon,
        sound_enabled=sound_enabled,
        data=data,
    )
