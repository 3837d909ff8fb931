"""Tests for push transports."""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import requests
from firebase_admin import messaging
from firebase_admin.exceptions import UnavailableError

from airwatch.config import Settings
from airwatch.core.aqi import ReadingSnapshot
from airwatch.core.notifications import compose
from airwatch.db.models.notification import NotificationCategory
from airwatch.services.dispatcher import Dispatcher, DispatchStatus
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import (
    FCMPushTransport,
    PushMessage,
    UnconfiguredPushTransport,
    build_push_transport,
)

MESSAGE = PushMessage(
    title="Daily Summary: 90",
    body="Air quality is currently Moderate.",
    icon="/icons/aqi-icon-192x192.png",
    data={"aqi": "90", "notificationType": "summary"},
    sound_enabled=False,
)


def started_transport() -> FCMPushTransport:
    transport = FCMPushTransport(credentials_path="unused.json")
    transport._app = object()  # skip Firebase initialisation
    return transport


def test_unconfigured_transport_always_fails() -> None:
    result = UnconfiguredPushTransport().send("tok", MESSAGE)

    assert result.success is False
    assert result.error["code"] == "not-configured"


def test_build_push_transport_without_credentials() -> None:
    transport = build_push_transport(Settings(FIREBASE_CREDENTIALS_PATH=None))
    assert isinstance(transport, UnconfiguredPushTransport)


def test_build_message_maps_sound_and_icon() -> None:
    built = FCMPushTransport.build_message("tok1", MESSAGE)

    assert built.token == "tok1"
    assert built.notification.title == MESSAGE.title
    assert built.data == {"aqi": "90", "notificationType": "summary"}
    assert built.android.notification.sound is None
    assert built.apns.payload.aps.sound is None
    assert built.webpush.notification.icon == MESSAGE.icon
    assert built.webpush.notification.silent is True

    loud = FCMPushTransport.build_message("tok1", PushMessage(title="t", body="b"))
    assert loud.android.notification.sound == "default"


def test_fcm_send_success() -> None:
    transport = started_transport()
    with patch("airwatch.services.push.messaging.send", return_value="projects/p/messages/1") as send:
        result = transport.send("tok1", MESSAGE)

    assert result.success is True
    assert result.message_id == "projects/p/messages/1"
    assert send.call_args.kwargs["app"] is transport._app


def test_fcm_unregistered_token() -> None:
    transport = started_transport()
    error = messaging.UnregisteredError("Requested entity was not found.")
    with patch("airwatch.services.push.messaging.send", side_effect=error):
        result = transport.send("stale-token", MESSAGE)

    assert result.success is False
    assert result.error["unregistered"] is True


def test_fcm_service_error() -> None:
    transport = started_transport()
    with patch("airwatch.services.push.messaging.send", side_effect=UnavailableError("backend down")):
        result = transport.send("tok1", MESSAGE)

    assert result.success is False
    assert result.error["code"] == "UNAVAILABLE"
    assert result.error["status"] is None


def test_fcm_network_error() -> None:
    transport = started_transport()
    with patch("airwatch.services.push.messaging.send", side_effect=TimeoutError("timed out")):
        result = transport.send("tok1", MESSAGE)

    assert result.success is False
    assert result.error == {"code": "TimeoutError", "message": "timed out"}


def test_build_push_transport_passes_send_timeout_to_firebase() -> None:
    settings = Settings(
        FIREBASE_CREDENTIALS_PATH="creds.json",
        FIREBASE_PROJECT_ID="airwatch-test",
        PUSH_TIMEOUT_SECONDS=2.5,
    )
    with patch("airwatch.services.push.credentials.Certificate") as certificate, patch(
        "airwatch.services.push.firebase_admin.initialize_app", return_value=object()
    ) as initialize_app:
        transport = build_push_transport(settings)

    assert isinstance(transport, FCMPushTransport)
    certificate.assert_called_once_with("creds.json")
    options = initialize_app.call_args.kwargs["options"]
    assert options["httpTimeout"] == settings.PUSH_TIMEOUT_SECONDS
    assert options["projectId"] == "airwatch-test"
    assert transport._app is initialize_app.return_value


def test_request_timeout_from_firebase_fails_dispatch(store: NotificationStore) -> None:
    reading = ReadingSnapshot(value=180, category="Unhealthy", timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc))
    composed = compose(NotificationCategory.ALERT, reading)
    error = requests.exceptions.Timeout("Read timed out. (read timeout=2.5)")

    with patch("airwatch.services.push.messaging.send", side_effect=error):
        result = Dispatcher(store, started_transport()).dispatch("user-1", "tok1", composed)

    assert result.status is DispatchStatus.FAILED
    assert result.error["code"] == "Timeout"
    assert store.list_history("user-1") == []
