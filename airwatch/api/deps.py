"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from airwatch.config import settings
from airwatch.db.session import get_db
from airwatch.services.dispatcher import Dispatcher
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import PushTransport, UnconfiguredPushTransport
from airwatch.services.readings import ReadingProvider, build_reading_provider
from airwatch.services.scheduler import NotificationScheduler
from airwatch.utils.cache import cache_backend
from airwatch.utils.exceptions import ReadingProviderError, handle_reading_error

_reading_provider_singleton: ReadingProvider | None = None


def get_store(db: Session = Depends(get_db)) -> NotificationStore:
    return NotificationStore(db)


def get_push_transport(request: Request) -> PushTransport:
    """Return the transport owned by the application lifespan."""

    transport = getattr(request.app.state, "push_transport", None)
    if transport is None:
        return UnconfiguredPushTransport()
    return transport


def get_reading_provider() -> ReadingProvider:
    """Return a cached reading provider built from settings."""

    global _reading_provider_singleton
    if _reading_provider_singleton is None:
        try:
            _reading_provider_singleton = build_reading_provider(settings, cache=cache_backend)
        except ReadingProviderError as exc:
            raise handle_reading_error(exc) from exc
    return _reading_provider_singleton


def get_dispatcher(
    store: NotificationStore = Depends(get_store),
    transport: PushTransport = Depends(get_push_transport),
) -> Dispatcher:
    return Dispatcher(store, transport)


def get_scheduler(
    store: NotificationStore = Depends(get_store),
    reading_provider: ReadingProvider = Depends(get_reading_provider),
    transport: PushTransport = Depends(get_push_transport),
) -> NotificationScheduler:
    """Assemble a scheduler bound to the request's session."""

    return NotificationScheduler.from_settings(
        settings,
        store=store,
        reading_provider=reading_provider,
        transport=transport,
        lock_backend=cache_backend,
    )
