"""Push delivery transports.

The scheduler and the HTTP layer only talk to :class:`PushTransport`. The
Firebase implementation owns its own named Firebase app so that it can be
started and torn down explicitly (API lifespan, Celery worker signals).
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError
from loguru import logger

from airwatch.config import Settings


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    icon: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)
    sound_enabled: bool = True


@dataclass(frozen=True)
class PushResult:
    """Transport answer: ``message_id`` on success, ``error`` payload otherwise."""

    success: bool
    message_id: Optional[str] = None
    error: Dict[str, Any] = field(default_factory=dict)


class PushTransport(Protocol):
    """Protocol shared by push transport implementations."""

    def send(self, token: str, message: PushMessage) -> PushResult:  # pragma: no cover - interface definition
        """Deliver ``message`` to the device identified by ``token``."""

    def close(self) -> None:  # pragma: no cover - interface definition
        """Release transport resources."""


class UnconfiguredPushTransport:
    """Transport used when no Firebase credentials are configured; every send fails."""

    def send(self, token: str, message: PushMessage) -> PushResult:
        logger.warning("Push transport not configured, dropping notification", title=message.title)
        return PushResult(success=False, error={"code": "not-configured", "message": "Push transport is not configured"})

    def close(self) -> None:
        return None


class FCMPushTransport:
    """Send notifications through Firebase Cloud Messaging."""

    def __init__(
        self,
        credentials_path: str,
        project_id: Optional[str] = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._credentials_path = credentials_path
        self._project_id = project_id
        self._timeout = timeout_seconds
        self._app: Optional[firebase_admin.App] = None

    def start(self) -> "FCMPushTransport":
        """Initialise a dedicated Firebase app; idempotent."""

        if self._app is not None:
            return self
        options: Dict[str, Any] = {"httpTimeout": self._timeout}
        if self._project_id:
            options["projectId"] = self._project_id
        self._app = firebase_admin.initialize_app(
            credentials.Certificate(self._credentials_path),
            options=options,
            name=f"airwatch-{uuid.uuid4().hex[:8]}",
        )
        logger.info("Firebase push transport initialised", project_id=self._project_id)
        return self

    def close(self) -> None:
        if self._app is None:
            return
        firebase_admin.delete_app(self._app)
        self._app = None

    @staticmethod
    def build_message(token: str, message: PushMessage) -> messaging.Message:
        sound = "default" if message.sound_enabled else None
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=message.title, body=message.body),
            data=dict(message.data),
            android=messaging.AndroidConfig(
                notification=messaging.AndroidNotification(sound=sound),
            ),
            apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound=sound))),
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    icon=message.icon, silent=not message.sound_enabled
                ),
            ),
        )

    def send(self, token: str, message: PushMessage) -> PushResult:
        if self._app is None:
            self.start()
        try:
            message_id = messaging.send(self.build_message(token, message), app=self._app)
        except messaging.UnregisteredError as exc:
            logger.warning("FCM token expired/unregistered", token=token[:20])
            return PushResult(success=False, error={"code": exc.code, "message": str(exc), "unregistered": True})
        except FirebaseError as exc:
            status_code = exc.http_response.status_code if exc.http_response is not None else None
            logger.error("FCM send failed", code=exc.code, status=status_code, error=str(exc))
            return PushResult(success=False, error={"code": exc.code, "status": status_code, "message": str(exc)})
        except Exception as exc:
            # Timeouts and connection errors from the HTTP layer land here
            logger.error("FCM request failed", error=str(exc))
            return PushResult(success=False, error={"code": type(exc).__name__, "message": str(exc)})

        logger.info("Push sent", token=token[:20], message_id=message_id)
        return PushResult(success=True, message_id=message_id)


def build_push_transport(settings: Settings) -> PushTransport:
    """Return the FCM transport when credentials are configured."""

    if not settings.FIREBASE_CREDENTIALS_PATH:
        logger.warning("FIREBASE_CREDENTIALS_PATH not set; push notifications disabled")
        return UnconfiguredPushTransport()
    return FCMPushTransport(
        credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
        project_id=settings.FIREBASE_PROJECT_ID,
        timeout_seconds=settings.PUSH_TIMEOUT_SECONDS,
    ).start()
