"""Periodic notification tick: evaluate every enabled preference and dispatch matches."""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from loguru import logger

from airwatch.config import Settings
from airwatch.core.aqi import ReadingSnapshot
from airwatch.core.notifications import compose, evaluate, matches_window, parse_notification_time, window_bucket
from airwatch.core.notifications.composer import DEFAULT_ICON, DEFAULT_URL
from airwatch.db.models.notification import NotificationPreference
from airwatch.services.dispatcher import Dispatcher, DispatchStatus
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import PushTransport
from airwatch.services.readings import ReadingProvider
from airwatch.utils.cache import CacheBackend
from airwatch.utils.exceptions import ConfigError, ReadingProviderError, StoreError


class TickStatus(str, enum.Enum):
    COMPLETED = "completed"
    BUSY = "busy"
    ABORTED = "aborted"


class Outcome(str, enum.Enum):
    FIRED = "fired"
    NOT_DUE = "not_due"
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass
class UserOutcome:
    user_id: str
    outcome: Outcome
    category: Optional[str] = None
    history_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class TickReport:
    """Summary of one scheduler tick."""

    status: TickStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    reading_value: Optional[float] = None
    considered: int = 0
    fired: int = 0
    skipped: int = 0
    duplicates: int = 0
    errored: int = 0
    outcomes: list[UserOutcome] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    abort_reason: Optional[str] = None

    def record(self, outcome: UserOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.outcome is Outcome.FIRED:
            self.fired += 1
        elif outcome.outcome is Outcome.SKIPPED:
            self.skipped += 1
        elif outcome.outcome is Outcome.DUPLICATE:
            self.duplicates += 1
        elif outcome.outcome is Outcome.ERROR:
            self.errored += 1
            self.errors.append({"user_id": outcome.user_id, "error": outcome.error or "unknown error"})

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        payload["started_at"] = self.started_at.isoformat()
        payload["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        for item in payload["outcomes"]:
            item["outcome"] = item["outcome"].value
        return payload


@dataclass
class SchedulePreview:
    current_aqi: float
    current_time: datetime
    users_to_notify: int
    total_users: int


class NotificationScheduler:
    """Drive evaluator, composer and dispatcher for all enabled preferences.

    Only one tick runs at a time: the tick lock lives in the cache backend
    (Redis when reachable) and a tick that cannot take it returns ``busy``.
    Scheduled sends carry a ``{user}:{category}:{window}`` dispatch key, so a
    second tick inside the same window does not send again.
    """

    LOCK_NAMESPACE = "notifications"
    LOCK_KEY = "tick"

    def __init__(
        self,
        store: NotificationStore,
        reading_provider: ReadingProvider,
        dispatcher: Dispatcher,
        lock_backend: CacheBackend,
        *,
        location: Optional[str] = None,
        tolerance_minutes: int = 5,
        wrap_hours: bool = False,
        timezone_name: str = "UTC",
        lock_ttl_seconds: int = 240,
        icon: str = DEFAULT_ICON,
        url: str = DEFAULT_URL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.reading_provider = reading_provider
        self.dispatcher = dispatcher
        self.lock_backend = lock_backend
        self.location = location
        self.tolerance_minutes = tolerance_minutes
        self.wrap_hours = wrap_hours
        self.tz = ZoneInfo(timezone_name)
        self.lock_ttl_seconds = lock_ttl_seconds
        self.icon = icon
        self.url = url
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: NotificationStore,
        reading_provider: ReadingProvider,
        transport: PushTransport,
        lock_backend: CacheBackend,
    ) -> "NotificationScheduler":
        return cls(
            store,
            reading_provider,
            Dispatcher(store, transport),
            lock_backend,
            location=settings.READING_LOCATION,
            tolerance_minutes=settings.NOTIFICATION_WINDOW_MINUTES,
            wrap_hours=settings.NOTIFICATION_WINDOW_WRAP_HOURS,
            timezone_name=settings.NOTIFICATION_TIMEZONE,
            lock_ttl_seconds=settings.NOTIFICATION_LOCK_TTL_SECONDS,
            icon=settings.NOTIFICATION_ICON,
            url=settings.NOTIFICATION_URL,
        )

    def now(self) -> datetime:
        """Current wall-clock time in the zone users' times refer to."""

        if self._clock is not None:
            return self._clock()
        return datetime.now(self.tz)

    def run_tick(self, now: Optional[datetime] = None) -> TickReport:
        """Run one tick unless another one holds the lock."""

        now = now or self.now()
        with self.lock_backend.hold(self.LOCK_NAMESPACE, self.LOCK_KEY, self.lock_ttl_seconds) as acquired:
            if not acquired:
                logger.warning("Notification tick already running, skipping", at=now.isoformat())
                return TickReport(status=TickStatus.BUSY, started_at=now, finished_at=now)
            return self._run(now)

    def _run(self, now: datetime) -> TickReport:
        report = TickReport(status=TickStatus.COMPLETED, started_at=now)

        try:
            reading = self.reading_provider.get_current_reading(self.location)
        except ReadingProviderError as exc:
            return self._abort(report, f"reading unavailable: {exc.message}")
        report.reading_value = reading.value

        try:
            preferences = self.store.list_enabled()
        except StoreError as exc:
            return self._abort(report, f"preferences unavailable: {exc.message}")

        for pref in preferences:
            report.considered += 1
            try:
                outcome = self._process(pref, reading, now)
            except Exception as exc:
                logger.exception("Failed to process notification preference", user_id=pref.user_id)
                outcome = UserOutcome(user_id=pref.user_id, outcome=Outcome.ERROR, error=str(exc))
            report.record(outcome)

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Notification tick completed",
            aqi=reading.value,
            considered=report.considered,
            fired=report.fired,
            skipped=report.skipped,
            duplicates=report.duplicates,
            errored=report.errored,
        )
        return report

    def _abort(self, report: TickReport, reason: str) -> TickReport:
        logger.error("Notification tick aborted", reason=reason)
        report.status = TickStatus.ABORTED
        report.abort_reason = reason
        report.finished_at = datetime.now(timezone.utc)
        return report

    def _process(self, pref: NotificationPreference, reading: ReadingSnapshot, now: datetime) -> UserOutcome:
        decision = evaluate(
            pref,
            reading,
            now,
            tolerance_minutes=self.tolerance_minutes,
            wrap_hours=self.wrap_hours,
        )
        if not decision.fire:
            return UserOutcome(user_id=pref.user_id, outcome=Outcome.NOT_DUE)

        category = decision.category
        hour, minute = parse_notification_time(pref.notification_time)
        dispatch_key = f"{pref.user_id}:{category.value}:{window_bucket(now, hour, minute)}"
        if pref.push_token and self.store.has_dispatch_key(dispatch_key):
            logger.info("Notification already sent for this window", user_id=pref.user_id, key=dispatch_key)
            return UserOutcome(user_id=pref.user_id, outcome=Outcome.DUPLICATE, category=category.value)

        composed = compose(
            category,
            reading,
            icon=self.icon,
            url=self.url,
            sound_enabled=pref.sound_enabled,
        )
        result = self.dispatcher.dispatch(
            pref.user_id,
            pref.push_token,
            composed,
            dispatch_key=dispatch_key,
        )

        if result.status is DispatchStatus.SKIPPED:
            return UserOutcome(user_id=pref.user_id, outcome=Outcome.SKIPPED, category=category.value)
        if result.status is DispatchStatus.FAILED:
            return UserOutcome(
                user_id=pref.user_id,
                outcome=Outcome.ERROR,
                category=category.value,
                error=str(result.error.get("message") or result.error),
            )
        return UserOutcome(
            user_id=pref.user_id,
            outcome=Outcome.FIRED,
            category=category.value,
            history_id=str(result.history_id) if result.history_id else None,
            error=result.history_error,
        )

    def preview(self, now: Optional[datetime] = None) -> SchedulePreview:
        """Count enabled users whose daily window is open now; sends nothing."""

        now = now or self.now()
        reading = self.reading_provider.get_current_reading(self.location)
        preferences = self.store.list_enabled()

        due = 0
        for pref in preferences:
            try:
                hour, minute = parse_notification_time(pref.notification_time)
            except ConfigError:
                continue
            if matches_window(now, hour, minute, self.tolerance_minutes, self.wrap_hours):
                due += 1

        return SchedulePreview(
            current_aqi=reading.value,
            current_time=now,
            users_to_notify=due,
            total_users=len(preferences),
        )
