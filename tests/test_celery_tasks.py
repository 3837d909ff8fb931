"""Tests for Celery background tasks."""
from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from airwatch.services.notification_store import NotificationStore
from airwatch.services.readings import StaticReadingProvider
from airwatch.services.scheduler import NotificationScheduler
from airwatch.tasks import notifications as notification_tasks
from airwatch.tasks.notifications import run_notification_tick

TICK_TIME = datetime(2024, 5, 1, 8, 2)


@pytest.fixture()
def task_session_factory(db_session):
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_session.bind)
    sessions: list = []

    def create_session():
        session = factory()
        sessions.append(session)
        return session

    try:
        yield create_session
    finally:
        for session in sessions:
            session.close()


@pytest.fixture()
def due_preferences(store: NotificationStore):
    store.upsert("user-1", {"push_token": "tok1"})
    store.upsert("user-2", {"push_token": None})
    store.upsert("user-3", {"push_token": "tok3", "notification_time": "20:00"})


def run_task(task_session_factory, push_transport, value: float = 180) -> dict:
    with patch("airwatch.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
        "airwatch.tasks.notifications.build_push_transport", return_value=push_transport
    ), patch(
        "airwatch.tasks.notifications.build_reading_provider", return_value=StaticReadingProvider(value=value)
    ), patch.object(NotificationScheduler, "now", return_value=TICK_TIME):
        return run_notification_tick.run()


def test_run_notification_tick(db_session, task_session_factory, due_preferences, push_transport, store):
    result = run_task(task_session_factory, push_transport)

    assert result["status"] == "completed"
    assert result["considered"] == 3
    assert result["fired"] == 1
    assert result["skipped"] == 1
    assert [token for token, _ in push_transport.sent] == ["tok1"]
    assert push_transport.closed is True

    history = store.list_history("user-1")
    assert len(history) == 1
    assert history[0].category == "alert"


def test_run_notification_tick_is_idempotent_within_window(
    db_session, task_session_factory, due_preferences, push_transport
):
    run_task(task_session_factory, push_transport)
    result = run_task(task_session_factory, push_transport)

    assert result["fired"] == 0
    assert result["duplicates"] == 1
    assert len(push_transport.sent) == 1


def test_worker_transport_is_reused(db_session, task_session_factory, due_preferences, push_transport):
    with patch("airwatch.tasks.notifications.build_push_transport", return_value=push_transport):
        notification_tasks._open_push_transport()
    try:
        with patch("airwatch.tasks.notifications.SessionLocal", side_effect=task_session_factory), patch(
            "airwatch.tasks.notifications.build_reading_provider", return_value=StaticReadingProvider(value=90)
        ), patch.object(NotificationScheduler, "now", return_value=TICK_TIME):
            result = run_notification_tick.run()

        assert result["fired"] == 1
        assert push_transport.closed is False
    finally:
        notification_tasks._close_push_transport()

    assert push_transport.closed is True
    assert notification_tasks._worker_transport is None
