"""Decide whether a user's preference should fire for the current reading."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from loguru import logger

from airwatch.core.aqi import ReadingSnapshot
from airwatch.db.models.notification import NotificationCategory
from airwatch.utils.exceptions import ConfigError

DEFAULT_WINDOW_MINUTES = 5
MINUTES_PER_DAY = 24 * 60


class PreferenceLike(Protocol):
    enabled: bool
    notification_time: str
    threshold: int
    notify_on_threshold_crossed: bool
    daily_summary: bool


@dataclass(frozen=True)
class Decision:
    """Outcome of :func:`evaluate`: ``category`` is ``None`` for no-fire."""

    category: Optional[NotificationCategory] = None

    @property
    def fire(self) -> bool:
        return self.category is not None


NO_FIRE = Decision()


def parse_notification_time(value: str) -> Tuple[int, int]:
    """Parse ``"HH:MM"`` into ``(hour, minute)`` or raise :class:`ConfigError`."""
    try:
        hour_text, minute_text = str(value).strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid notification time {value!r}", {"notification_time": value}) from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigError(f"Invalid notification time {value!r}", {"notification_time": value})
    return hour, minute


def matches_window(
    now: dt.datetime,
    hour: int,
    minute: int,
    tolerance_minutes: int = DEFAULT_WINDOW_MINUTES,
    wrap_hours: bool = False,
) -> bool:
    """Return ``True`` when ``now`` falls inside the daily check window.

    The default compares hours for equality and only then the minute
    distance, so ``07:58`` is *not* matched at ``08:03``. ``wrap_hours``
    switches to a circular distance on the 24h clock.
    """
    if not wrap_hours:
        return now.hour == hour and abs(now.minute - minute) <= tolerance_minutes

    distance = abs((now.hour * 60 + now.minute) - (hour * 60 + minute))
    distance = min(distance, MINUTES_PER_DAY - distance)
    return distance <= tolerance_minutes


def window_bucket(now: dt.datetime, hour: int, minute: int) -> str:
    """Return the scheduled occurrence closest to ``now`` as ``YYYY-MM-DDTHH:MM``.

    Ticks that fall into the same window share the bucket, which makes it
    usable as part of a dispatch dedup key.
    """
    scheduled = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    candidates = (scheduled - dt.timedelta(days=1), scheduled, scheduled + dt.timedelta(days=1))
    nearest = min(candidates, key=lambda candidate: abs(now - candidate))
    return nearest.strftime("%Y-%m-%dT%H:%M")


def evaluate(
    pref: PreferenceLike,
    reading: ReadingSnapshot,
    now: dt.datetime,
    *,
    tolerance_minutes: int = DEFAULT_WINDOW_MINUTES,
    wrap_hours: bool = False,
) -> Decision:
    """Return the notification decision for one preference.

    Threshold alerts take precedence over the daily summary. Outside the
    daily window nothing fires. Improvement and worsening are never
    produced here; they stay reserved for a trend comparison.
    """
    if not pref.enabled:
        return NO_FIRE

    try:
        hour, minute = parse_notification_time(pref.notification_time)
    except ConfigError as exc:
        logger.warning(
            "Skipping preference with malformed notification time",
            user_id=getattr(pref, "user_id", None),
            error=exc.message,
        )
        return NO_FIRE

    if not matches_window(now, hour, minute, tolerance_minutes, wrap_hours):
        return NO_FIRE

    if reading.value >= pref.threshold and pref.notify_on_threshold_crossed:
        return Decision(NotificationCategory.ALERT)
    if pref.daily_summary:
        return Decision(NotificationCategory.SUMMARY)
    return NO_FIRE
