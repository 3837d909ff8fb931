"""Persistence adapter for notification preferences and delivery history."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Mapping

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from airwatch.db.models.notification import (
    NotificationCategory,
    NotificationHistory,
    NotificationPreference,
    utcnow,
)
from airwatch.utils.exceptions import ConfigError, NotFoundError, StoreError

PREFERENCE_DEFAULTS: dict[str, Any] = {
    "enabled": True,
    "push_token": None,
    "notification_time": "08:00",
    "threshold": 150,
    "sound_enabled": True,
    "notify_on_threshold_crossed": True,
    "notify_on_improvement": True,
    "notify_on_worsening": True,
    "daily_summary": True,
}

PREFERENCE_FIELDS = frozenset(PREFERENCE_DEFAULTS)


def _parse_history_id(entry_id: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(entry_id, uuid.UUID):
        return entry_id
    try:
        return uuid.UUID(str(entry_id))
    except (TypeError, ValueError):
        return None


class NotificationStore:
    """Preference and history operations on top of a SQLAlchemy session.

    Every write commits immediately; database failures are rolled back and
    surfaced as :class:`StoreError` so callers never see driver exceptions.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreError:
        self.db.rollback()
        logger.error("Notification store failure", action=action, error=str(exc))
        return StoreError(f"Failed to {action}", {"error": str(exc)})

    @staticmethod
    def _validate_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - PREFERENCE_FIELDS
        if unknown:
            raise ConfigError("Unknown preference fields", {"fields": sorted(unknown)})
        return dict(fields)

    # Preferences -------------------------------------------------------

    @classmethod
    def new_preference(cls, user_id: str, fields: Mapping[str, Any]) -> NotificationPreference:
        """Build an unsaved preference with defaults filled in; the caller adds and commits it."""

        values = cls._validate_fields(fields)
        pref = NotificationPreference(user_id=user_id, **{**PREFERENCE_DEFAULTS, **values})
        now = utcnow()
        pref.created_at = now
        pref.updated_at = now
        return pref

    def get_by_user(self, user_id: str) -> NotificationPreference | None:
        """Return the preference for ``user_id`` or ``None``."""

        try:
            return self.db.scalars(
                select(NotificationPreference).where(NotificationPreference.user_id == user_id)
            ).first()
        except SQLAlchemyError as exc:
            raise self._fail("fetch notification preference", exc) from exc

    def upsert(self, user_id: str, fields: Mapping[str, Any]) -> NotificationPreference:
        """Create the preference with defaults or update it in place."""

        values = self._validate_fields(fields)
        pref = self.get_by_user(user_id)
        if pref is None:
            pref = self.new_preference(user_id, values)
            self.db.add(pref)
            action = "create notification preference"
        else:
            for name, value in values.items():
                setattr(pref, name, value)
            pref.touch()
            action = "update notification preference"

        try:
            self.db.commit()
            self.db.refresh(pref)
        except SQLAlchemyError as exc:
            raise self._fail(action, exc) from exc
        return pref

    def update(self, user_id: str, fields: Mapping[str, Any]) -> NotificationPreference:
        """Update an existing preference or raise :class:`NotFoundError`."""

        if self.get_by_user(user_id) is None:
            raise NotFoundError("Notification preferences not found", {"user_id": user_id})
        return self.upsert(user_id, fields)

    def list_enabled(self) -> list[NotificationPreference]:
        try:
            stmt = (
                select(NotificationPreference)
                .where(NotificationPreference.enabled.is_(True))
                .order_by(NotificationPreference.id)
            )
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as exc:
            raise self._fail("list notification preferences", exc) from exc

    # History -----------------------------------------------------------

    def append_history(
        self,
        *,
        user_id: str,
        title: str,
        body: str,
        aqi: float,
        category: NotificationCategory | str,
        sent_at: datetime | None = None,
        dispatch_key: str | None = None,
    ) -> uuid.UUID:
        """Record a dispatched notification and return its id."""

        category = NotificationCategory(category)
        sent_at = sent_at or utcnow()
        entry = NotificationHistory(
            user_id=user_id,
            title=title,
            body=body,
            aqi=aqi,
            category=category.value,
            read=False,
            dispatch_key=dispatch_key,
            sent_at=sent_at,
            created_at=utcnow(),
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("create notification history", exc) from exc
        return entry.id

    def list_history(self, user_id: str, limit: int = 10) -> list[NotificationHistory]:
        """Return the newest ``limit`` entries for ``user_id``."""

        try:
            stmt = (
                select(NotificationHistory)
                .where(NotificationHistory.user_id == user_id)
                .order_by(NotificationHistory.sent_at.desc())
                .limit(limit)
            )
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as exc:
            raise self._fail("fetch notification history", exc) from exc

    def mark_history_read(self, entry_id: str | uuid.UUID) -> bool:
        """Mark an entry read; ``False`` only when it does not exist."""

        history_id = _parse_history_id(entry_id)
        if history_id is None:
            return False
        try:
            entry = self.db.get(NotificationHistory, history_id)
            if entry is None:
                return False
            if entry.mark_read():
                self.db.commit()
            return True
        except SQLAlchemyError as exc:
            raise self._fail("mark notification as read", exc) from exc

    def has_dispatch_key(self, dispatch_key: str) -> bool:
        try:
            stmt = select(NotificationHistory.id).where(NotificationHistory.dispatch_key == dispatch_key)
            return self.db.scalars(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise self._fail("check dispatch key", exc) from exc
