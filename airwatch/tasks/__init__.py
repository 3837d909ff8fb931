"""Celery tasks package."""

from airwatch.tasks import notifications

__all__ = ["notifications"]
