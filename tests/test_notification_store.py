"""Tests for the notification preference and history store."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from airwatch.db.models.notification import NotificationCategory
from airwatch.services.notification_store import NotificationStore
from airwatch.utils.exceptions import ConfigError, NotFoundError, StoreError


def test_upsert_creates_with_defaults(store: NotificationStore) -> None:
    pref = store.upsert("user-1", {"push_token": "tok1"})

    assert pref.id is not None
    assert pref.user_id == "user-1"
    assert pref.enabled is True
    assert pref.notification_time == "08:00"
    assert pref.threshold == 150
    assert pref.sound_enabled is True
    assert pref.notify_on_threshold_crossed is True
    assert pref.notify_on_improvement is True
    assert pref.notify_on_worsening is True
    assert pref.daily_summary is True
    assert pref.push_token == "tok1"


def test_upsert_updates_in_place_and_refreshes_timestamp(store: NotificationStore) -> None:
    created = store.upsert("user-1", {})
    first_update = created.updated_at

    updated = store.upsert("user-1", {"threshold": 200, "notification_time": "19:30"})

    assert updated.id == created.id
    assert updated.threshold == 200
    assert updated.notification_time == "19:30"
    assert updated.updated_at >= first_update
    assert store.get_by_user("user-1").threshold == 200


def test_unknown_fields_are_rejected(store: NotificationStore) -> None:
    with pytest.raises(ConfigError) as exc_info:
        store.upsert("user-1", {"threshold": 100, "favourite_colour": "blue"})
    assert exc_info.value.details == {"fields": ["favourite_colour"]}
    assert store.get_by_user("user-1") is None


def test_update_requires_existing_record(store: NotificationStore) -> None:
    with pytest.raises(NotFoundError):
        store.update("missing", {"threshold": 10})

    store.upsert("user-1", {})
    assert store.update("user-1", {"enabled": False}).enabled is False


def test_list_enabled_skips_disabled(store: NotificationStore) -> None:
    store.upsert("on-1", {})
    store.upsert("off", {"enabled": False})
    store.upsert("on-2", {})

    assert [pref.user_id for pref in store.list_enabled()] == ["on-1", "on-2"]


def test_history_is_newest_first_and_limited(store: NotificationStore) -> None:
    base = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    for offset in range(12):
        store.append_history(
            user_id="user-1",
            title=f"Daily Summary: {offset}",
            body="body",
            aqi=float(offset),
            category=NotificationCategory.SUMMARY,
            sent_at=base + timedelta(days=offset),
        )
    store.append_history(
        user_id="someone-else", title="t", body="b", aqi=1.0, category="alert", sent_at=base
    )

    history = store.list_history("user-1")

    assert len(history) == 10
    assert history[0].title == "Daily Summary: 11"
    assert history[-1].title == "Daily Summary: 2"
    assert all(entry.read is False for entry in history)
    assert len(store.list_history("user-1", limit=3)) == 3


def test_append_history_rejects_unknown_category(store: NotificationStore) -> None:
    with pytest.raises(ValueError):
        store.append_history(user_id="user-1", title="t", body="b", aqi=1.0, category="trend")


def test_mark_read_is_idempotent(store: NotificationStore) -> None:
    entry_id = store.append_history(
        user_id="user-1", title="t", body="b", aqi=180.0, category=NotificationCategory.ALERT
    )

    assert store.mark_history_read(str(entry_id)) is True
    assert store.mark_history_read(str(entry_id)) is True
    assert store.list_history("user-1")[0].read is True


def test_mark_read_of_unknown_entry(store: NotificationStore) -> None:
    assert store.mark_history_read("00000000-0000-0000-0000-000000000000") is False
    assert store.mark_history_read("not-a-uuid") is False


def test_dispatch_key_lookup(store: NotificationStore) -> None:
    key = "user-1:alert:2024-05-01T08:00"
    assert store.has_dispatch_key(key) is False

    store.append_history(
        user_id="user-1", title="t", body="b", aqi=180.0, category="alert", dispatch_key=key
    )

    assert store.has_dispatch_key(key) is True


def test_database_errors_become_store_errors(store: NotificationStore) -> None:
    failure = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch.object(store.db, "scalars", side_effect=failure):
        with pytest.raises(StoreError):
            store.list_enabled()
