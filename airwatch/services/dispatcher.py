"""Send composed notifications and record successful deliveries."""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger

from airwatch.core.notifications.composer import ComposedNotification
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import PushMessage, PushTransport
from airwatch.utils.exceptions import StoreError


class DispatchStatus(str, enum.Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Outcome of one dispatch attempt."""

    status: DispatchStatus
    message_id: Optional[str] = None
    history_id: Optional[uuid.UUID] = None
    error: Dict[str, Any] = field(default_factory=dict)
    history_error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status is DispatchStatus.SENT


class Dispatcher:
    """Deliver one notification to one push token.

    Transport failures are returned, never retried here. A history write
    that fails after a successful push is logged and reported on the result.
    It is not retried.
    """

    def __init__(self, store: NotificationStore, transport: PushTransport) -> None:
        self.store = store
        self.transport = transport

    def dispatch(
        self,
        user_id: str,
        push_token: Optional[str],
        composed: ComposedNotification,
        *,
        dispatch_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        if not push_token:
            logger.info("No push token, skipping dispatch", user_id=user_id)
            return DispatchResult(status=DispatchStatus.SKIPPED)

        sent_at = now or datetime.now(timezone.utc)
        message = PushMessage(
            title=composed.title,
            body=composed.body,
            icon=composed.icon,
            data=composed.data,
            sound_enabled=composed.sound_enabled,
        )
        try:
            result = self.transport.send(push_token, message)
        except Exception as exc:
            logger.error("Push transport raised", user_id=user_id, error=str(exc))
            return DispatchResult(
                status=DispatchStatus.FAILED,
                error={"code": type(exc).__name__, "message": str(exc)},
            )

        if not result.success:
            logger.warning("Push delivery failed", user_id=user_id, error=result.error)
            return DispatchResult(status=DispatchStatus.FAILED, error=dict(result.error))

        try:
            history_id = self.store.append_history(
                user_id=user_id,
                title=composed.title,
                body=composed.body,
                aqi=composed.value,
                category=composed.category,
                sent_at=sent_at,
                dispatch_key=dispatch_key,
            )
        except StoreError as exc:
            logger.error(
                "Push delivered but history was not recorded",
                user_id=user_id,
                message_id=result.message_id,
                error=exc.message,
            )
            return DispatchResult(
                status=DispatchStatus.SENT,
                message_id=result.message_id,
                history_error=exc.message,
            )

        logger.info(
            "Notification dispatched",
            user_id=user_id,
            category=composed.category.value,
            history_id=str(history_id),
        )
        return DispatchResult(status=DispatchStatus.SENT, message_id=result.message_id, history_id=history_id)
