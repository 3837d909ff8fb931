"""Notification preference, history and dispatch endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from loguru import logger

from airwatch.api import deps
from airwatch.config import settings
from airwatch.core.notifications import compose
from airwatch.db.models.notification import NotificationCategory, NotificationHistory, NotificationPreference
from airwatch.schemas import (
    ComposedRead,
    HistoryMarkReadResponse,
    HistoryRead,
    NotificationTestRequest,
    NotificationTestResponse,
    PreferenceCreate,
    PreferenceRead,
    PreferenceUpdate,
    ScheduleCheckResponse,
    TickReportRead,
)
from airwatch.services.dispatcher import Dispatcher, DispatchStatus
from airwatch.services.notification_store import NotificationStore
from airwatch.services.readings import ReadingProvider
from airwatch.services.scheduler import NotificationScheduler, TickStatus
from airwatch.utils.exceptions import (
    ConfigError,
    NotFoundError,
    ReadingProviderError,
    StoreError,
    TransportError,
    handle_config_error,
    handle_not_found_error,
    handle_reading_error,
    handle_store_error,
    handle_transport_error,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _require_user_id(user_id: Optional[str]) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")
    return user_id


@router.get("/preferences", response_model=PreferenceRead)
def read_preferences(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: NotificationStore = Depends(deps.get_store),
) -> NotificationPreference:
    """Return the preference record for ``userId``."""

    user_id = _require_user_id(user_id)
    try:
        pref = store.get_by_user(user_id)
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    if pref is None:
        raise handle_not_found_error(NotFoundError("Notification preferences not found"))
    return pref


@router.post("/preferences", response_model=PreferenceRead)
def save_preferences(
    payload: PreferenceCreate,
    response: Response,
    store: NotificationStore = Depends(deps.get_store),
) -> NotificationPreference:
    """Create the record with defaults, or update it when it already exists."""

    user_id = _require_user_id(payload.user_id)
    try:
        created = store.get_by_user(user_id) is None
        pref = store.upsert(user_id, payload.changes())
    except ConfigError as exc:
        raise handle_config_error(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return pref


@router.put("/preferences", response_model=PreferenceRead)
def update_preferences(
    payload: PreferenceUpdate,
    user_id: Optional[str] = Query(None, alias="userId"),
    store: NotificationStore = Depends(deps.get_store),
) -> NotificationPreference:
    """Update an existing record; 404 when the user has none."""

    user_id = _require_user_id(user_id)
    try:
        return store.update(user_id, payload.changes())
    except NotFoundError as exc:
        raise handle_not_found_error(exc) from exc
    except ConfigError as exc:
        raise handle_config_error(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc


@router.get("/history", response_model=list[HistoryRead])
def read_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(10, ge=1, le=100),
    store: NotificationStore = Depends(deps.get_store),
) -> list[NotificationHistory]:
    """Return the newest history entries for ``userId``."""

    user_id = _require_user_id(user_id)
    try:
        return store.list_history(user_id, limit=limit)
    except StoreError as exc:
        raise handle_store_error(exc) from exc


@router.patch("/history", response_model=HistoryMarkReadResponse)
def mark_history_read(
    entry_id: Optional[str] = Query(None, alias="id"),
    store: NotificationStore = Depends(deps.get_store),
) -> HistoryMarkReadResponse:
    """Mark one history entry as read. Marking it twice is not an error."""

    if not entry_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Notification ID is required")
    try:
        found = store.mark_history_read(entry_id)
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    if not found:
        raise handle_not_found_error(NotFoundError("Notification not found"))
    return HistoryMarkReadResponse(success=True)


@router.post("/test", response_model=NotificationTestResponse)
def send_test_notification(
    payload: NotificationTestRequest,
    store: NotificationStore = Depends(deps.get_store),
    reading_provider: ReadingProvider = Depends(deps.get_reading_provider),
    dispatcher: Dispatcher = Depends(deps.get_dispatcher),
) -> NotificationTestResponse:
    """Send a test notification with the current reading to one user."""

    user_id = _require_user_id(payload.user_id)
    try:
        pref = store.get_by_user(user_id)
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    if pref is None:
        raise handle_not_found_error(NotFoundError("Notification preferences not found"))
    if not pref.push_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No push token registered for this user")

    try:
        reading = reading_provider.get_current_reading(settings.READING_LOCATION)
    except ReadingProviderError as exc:
        raise handle_reading_error(exc) from exc

    composed = compose(
        NotificationCategory.SUMMARY,
        reading,
        icon=settings.NOTIFICATION_ICON,
        url=settings.NOTIFICATION_URL,
        sound_enabled=pref.sound_enabled,
        is_test=True,
    )
    result = dispatcher.dispatch(user_id, pref.push_token, composed)
    if result.status is DispatchStatus.FAILED:
        raise handle_transport_error(TransportError("Failed to send notification", result.error))

    logger.info("Test notification sent", user_id=user_id, message_id=result.message_id)
    return NotificationTestResponse(
        success=True,
        message_id=result.message_id,
        history_id=result.history_id,
        notification=ComposedRead.model_validate(composed),
    )


@router.post("/dispatch", response_model=TickReportRead)
def run_dispatch_tick(
    scheduler: NotificationScheduler = Depends(deps.get_scheduler),
) -> TickReportRead:
    """Run one scheduler tick synchronously, as the periodic worker would."""

    report = scheduler.run_tick()
    if report.status is TickStatus.ABORTED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Notification tick aborted", "reason": report.abort_reason},
        )
    return TickReportRead.model_validate(report)


@router.get("/schedule", response_model=ScheduleCheckResponse)
def check_schedule(
    scheduler: NotificationScheduler = Depends(deps.get_scheduler),
) -> ScheduleCheckResponse:
    """Report how many enabled users are due right now without sending anything."""

    try:
        preview = scheduler.preview()
    except ReadingProviderError as exc:
        raise handle_reading_error(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    return ScheduleCheckResponse.model_validate(preview)
