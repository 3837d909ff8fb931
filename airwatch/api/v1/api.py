"""API router for version 1."""
from fastapi import APIRouter

from airwatch.api.v1.endpoints import notifications, readings, users


api_router = APIRouter()
api_router.include_router(notifications.router)
api_router.include_router(readings.router)
api_router.include_router(users.router)
