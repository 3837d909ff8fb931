"""Tests for the notification HTTP endpoints."""
from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

from fastapi.testclient import TestClient

from airwatch.api import deps
from airwatch.services.dispatcher import Dispatcher
from airwatch.services.notification_store import NotificationStore
from airwatch.services.readings import StaticReadingProvider
from airwatch.services.scheduler import NotificationScheduler
from airwatch.utils.cache import CacheBackend
from airwatch.utils.exceptions import ReadingProviderError, StoreError

PREFS_URL = "/api/v1/notifications/preferences"
HISTORY_URL = "/api/v1/notifications/history"


def create_preferences(client: TestClient, user_id: str = "user-1", **fields) -> dict:
    response = client.post(PREFS_URL, json={"userId": user_id, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def test_preferences_require_user_id(client: TestClient) -> None:
    assert client.get(PREFS_URL).status_code == 400
    assert client.post(PREFS_URL, json={"threshold": 100}).status_code == 400
    assert client.put(PREFS_URL, json={"threshold": 100}).status_code == 400


def test_get_missing_preferences_is_404(client: TestClient) -> None:
    response = client.get(PREFS_URL, params={"userId": "nobody"})
    assert response.status_code == 404


def test_post_creates_then_updates(client: TestClient) -> None:
    created = create_preferences(client, pushToken="tok1")
    assert created["userId"] == "user-1"
    assert created["enabled"] is True
    assert created["notificationTime"] == "08:00"
    assert created["threshold"] == 150
    assert created["pushToken"] == "tok1"
    assert created["dailySummary"] is True

    response = client.post(PREFS_URL, json={"userId": "user-1", "threshold": 90, "soundEnabled": False})
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]
    assert body["threshold"] == 90
    assert body["soundEnabled"] is False
    assert body["pushToken"] == "tok1"

    fetched = client.get(PREFS_URL, params={"userId": "user-1"}).json()
    assert fetched["threshold"] == 90


def test_legacy_fcm_token_alias_is_accepted(client: TestClient) -> None:
    created = create_preferences(client, fcmToken="legacy-token")
    assert created["pushToken"] == "legacy-token"


def test_unknown_and_malformed_fields_are_rejected(client: TestClient) -> None:
    unknown = client.post(PREFS_URL, json={"userId": "user-1", "favouriteColour": "blue"})
    assert unknown.status_code == 422

    bad_time = client.post(PREFS_URL, json={"userId": "user-1", "notificationTime": "25:00"})
    assert bad_time.status_code == 422
    assert bad_time.json()["message"] == "Validation failed"


def test_put_updates_existing_only(client: TestClient) -> None:
    missing = client.put(PREFS_URL, params={"userId": "user-1"}, json={"threshold": 120})
    assert missing.status_code == 404

    create_preferences(client)
    response = client.put(
        PREFS_URL, params={"userId": "user-1"}, json={"notificationTime": "21:15", "enabled": False}
    )
    assert response.status_code == 200
    assert response.json()["notificationTime"] == "21:15"
    assert response.json()["enabled"] is False


def test_explicit_null_for_required_fields_is_rejected(client: TestClient) -> None:
    create_preferences(client, threshold=120)

    response = client.put(PREFS_URL, params={"userId": "user-1"}, json={"threshold": None})
    assert response.status_code == 422
    assert response.json()["message"] == "Validation failed"

    created = client.post(PREFS_URL, json={"userId": "user-2", "enabled": None})
    assert created.status_code == 422

    stored = client.get(PREFS_URL, params={"userId": "user-1"})
    assert stored.json()["threshold"] == 120


def test_push_token_can_be_cleared_with_null(client: TestClient) -> None:
    create_preferences(client, pushToken="tok1")

    response = client.put(PREFS_URL, params={"userId": "user-1"}, json={"pushToken": None})

    assert response.status_code == 200
    assert response.json()["pushToken"] is None


def test_push_token_longer_than_column_is_rejected(client: TestClient) -> None:
    response = client.post(PREFS_URL, json={"userId": "user-1", "pushToken": "x" * 513})

    assert response.status_code == 422
    assert client.get(PREFS_URL, params={"userId": "user-1"}).status_code == 404


def test_store_failure_is_500_without_internals(client: TestClient) -> None:
    error = StoreError("Failed to fetch notification preference", {"error": "connection refused"})
    with patch.object(NotificationStore, "get_by_user", side_effect=error):
        response = client.get(PREFS_URL, params={"userId": "user-1"})

    assert response.status_code == 500
    assert "connection refused" not in response.text


def test_history_listing_and_mark_read(client: TestClient, store: NotificationStore) -> None:
    assert client.get(HISTORY_URL).status_code == 400
    assert client.get(HISTORY_URL, params={"userId": "user-1"}).json() == []

    entry_id = store.append_history(user_id="user-1", title="Daily Summary: 90", body="b", aqi=90, category="summary")
    store.append_history(user_id="user-1", title="Daily Summary: 95", body="b", aqi=95, category="summary")

    listed = client.get(HISTORY_URL, params={"userId": "user-1", "limit": 1})
    assert listed.status_code == 200
    assert len(listed.json()) == 1
    assert listed.json()[0]["read"] is False
    assert "sentAt" in listed.json()[0]

    assert client.patch(HISTORY_URL).status_code == 400
    assert client.patch(HISTORY_URL, params={"id": "00000000-0000-0000-0000-000000000000"}).status_code == 404
    assert client.patch(HISTORY_URL, params={"id": "garbage"}).status_code == 404

    first = client.patch(HISTORY_URL, params={"id": str(entry_id)})
    second = client.patch(HISTORY_URL, params={"id": str(entry_id)})
    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert second.status_code == 200


def test_test_notification_flow(client: TestClient, push_transport, store: NotificationStore) -> None:
    url = "/api/v1/notifications/test"
    assert client.post(url, json={}).status_code == 400
    assert client.post(url, json={"userId": "user-1"}).status_code == 404

    create_preferences(client)
    no_token = client.post(url, json={"userId": "user-1"})
    assert no_token.status_code == 400

    client.post(PREFS_URL, json={"userId": "user-1", "pushToken": "tok1"})
    response = client.post(url, json={"userId": "user-1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["notification"]["title"] == "Test Notification: AQI 180"
    assert body["notification"]["data"]["isTest"] == "true"
    assert push_transport.sent[0][0] == "tok1"

    history = store.list_history("user-1")
    assert len(history) == 1
    assert history[0].category == "summary"
    assert str(history[0].id) == body["historyId"]


def test_test_notification_transport_failure_is_500(client: TestClient, push_transport) -> None:
    create_preferences(client, pushToken="expired")
    push_transport.fail = True

    response = client.post("/api/v1/notifications/test", json={"userId": "user-1"})

    assert response.status_code == 500
    assert response.json()["detail"]["error"]["code"] == "invalid-argument"


def test_dispatch_runs_one_tick(app, client: TestClient, db_session, push_transport) -> None:
    store = NotificationStore(db_session)
    store.upsert("user-1", {"push_token": "tok1", "threshold": 150})
    store.upsert("user-2", {"push_token": "tok2", "notification_time": "18:00"})

    def fixed_scheduler() -> NotificationScheduler:
        return NotificationScheduler(
            store,
            StaticReadingProvider(value=180),
            Dispatcher(store, push_transport),
            CacheBackend(None),
            clock=lambda: datetime(2024, 5, 1, 8, 2),
        )

    app.dependency_overrides[deps.get_scheduler] = fixed_scheduler
    response = client.post("/api/v1/notifications/dispatch")

    assert response.status_code == 200
    report = response.json()
    assert report["status"] == "completed"
    assert report["considered"] == 2
    assert report["fired"] == 1
    fired = [item for item in report["outcomes"] if item["outcome"] == "fired"]
    assert fired[0]["userId"] == "user-1"
    assert fired[0]["category"] == "alert"


def test_dispatch_aborted_tick_is_500(app, client: TestClient, reading_provider) -> None:
    with patch.object(reading_provider, "get_current_reading", side_effect=ReadingProviderError("offline")):
        response = client.post("/api/v1/notifications/dispatch")

    assert response.status_code == 500
    assert response.json()["detail"]["message"] == "Notification tick aborted"


def test_schedule_preview(client: TestClient, store: NotificationStore) -> None:
    store.upsert("user-1", {})
    store.upsert("user-2", {"enabled": False})

    response = client.get("/api/v1/notifications/schedule")

    assert response.status_code == 200
    body = response.json()
    assert body["currentAqi"] == 180
    assert body["totalUsers"] == 1
    assert body["usersToNotify"] in (0, 1)
    assert body["message"] == "Notification schedule check completed"
