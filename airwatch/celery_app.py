"""Celery application instance and configuration."""
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from airwatch.config import settings

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _resolve_broker_url() -> str:
    if settings.CELERY_BROKER_URL is not None:
        return str(settings.CELERY_BROKER_URL)
    return str(settings.REDIS_URL or DEFAULT_REDIS_URL)


def _resolve_result_backend() -> str:
    if settings.CELERY_RESULT_BACKEND is not None:
        return str(settings.CELERY_RESULT_BACKEND)
    return str(settings.REDIS_URL or DEFAULT_REDIS_URL)


celery_app = Celery(
    "airwatch",
    broker=_resolve_broker_url(),
    backend=_resolve_result_backend(),
    include=["airwatch.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.NOTIFICATION_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    # A tick must finish well inside the lock expiry
    task_time_limit=settings.NOTIFICATION_LOCK_TTL_SECONDS,
    task_soft_time_limit=max(settings.NOTIFICATION_LOCK_TTL_SECONDS - 30, 30),
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "run-notification-tick": {
        "task": "airwatch.tasks.notifications.run_notification_tick",
        "schedule": crontab(minute=f"*/{settings.NOTIFICATION_TICK_MINUTES}"),
    },
}

__all__ = ["celery_app"]
