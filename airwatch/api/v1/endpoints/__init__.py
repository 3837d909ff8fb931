"""API endpoint modules for v1."""

from airwatch.api.v1.endpoints import notifications, readings, users

__all__ = [
    "notifications",
    "readings",
    "users",
]
