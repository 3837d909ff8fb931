"""Celery tasks for scheduled AQI notifications."""
from __future__ import annotations

from typing import Any

from celery.signals import worker_process_init, worker_process_shutdown
from loguru import logger

from airwatch.celery_app import celery_app
from airwatch.config import settings
from airwatch.db.session import SessionLocal
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import PushTransport, build_push_transport
from airwatch.services.readings import build_reading_provider
from airwatch.services.scheduler import NotificationScheduler
from airwatch.utils.cache import cache_backend

# One transport per worker process, created after fork
_worker_transport: PushTransport | None = None


@worker_process_init.connect
def _open_push_transport(**_: Any) -> None:
    global _worker_transport
    _worker_transport = build_push_transport(settings)


@worker_process_shutdown.connect
def _close_push_transport(**_: Any) -> None:
    global _worker_transport
    if _worker_transport is not None:
        _worker_transport.close()
        _worker_transport = None


@celery_app.task(name="airwatch.tasks.notifications.run_notification_tick")
def run_notification_tick() -> dict[str, Any]:
    """Evaluate all enabled preferences against the current reading and send what is due."""

    transport = _worker_transport
    owns_transport = transport is None
    if owns_transport:
        transport = build_push_transport(settings)

    db = SessionLocal()
    try:
        scheduler = NotificationScheduler.from_settings(
            settings,
            store=NotificationStore(db),
            reading_provider=build_reading_provider(settings, cache=cache_backend),
            transport=transport,
            lock_backend=cache_backend,
        )
        report = scheduler.run_tick()
        logger.info(
            "Notification tick task finished",
            status=report.status.value,
            fired=report.fired,
            errored=report.errored,
        )
        return report.to_dict()
    finally:
        db.close()
        if owns_transport:
            transport.close()
