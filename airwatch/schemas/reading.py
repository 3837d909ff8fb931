"""Pydantic models for environmental readings."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from airwatch.schemas.base import APIModel


class ReadingRead(APIModel):
    """Current reading enriched with the AQI bucket guidance."""

    value: float
    category: str
    color: str
    timestamp: datetime
    location: Optional[str] = None
    dominant_pollutant: Optional[str] = None
    health_recommendations: list[str]
    protection_measures: list[str]
