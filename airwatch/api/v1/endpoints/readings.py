"""Current environmental reading endpoint."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from airwatch.api import deps
from airwatch.config import settings
from airwatch.core.aqi import aqi_category, health_recommendations, protection_measures
from airwatch.schemas import ReadingRead
from airwatch.services.readings import ReadingProvider
from airwatch.utils.exceptions import ReadingProviderError, handle_reading_error

router = APIRouter(prefix="/readings", tags=["readings"])


@router.get("/current", response_model=ReadingRead)
def read_current_reading(
    location: Optional[str] = Query(None, max_length=128),
    reading_provider: ReadingProvider = Depends(deps.get_reading_provider),
) -> ReadingRead:
    """Return the latest AQI with its category and health guidance."""

    try:
        reading = reading_provider.get_current_reading(location or settings.READING_LOCATION)
    except ReadingProviderError as exc:
        raise handle_reading_error(exc) from exc

    label, color = aqi_category(reading.value)
    return ReadingRead(
        value=reading.value,
        category=label,
        color=color,
        timestamp=reading.timestamp,
        location=reading.location,
        dominant_pollutant=reading.dominant_pollutant,
        health_recommendations=health_recommendations(reading.value),
        protection_measures=protection_measures(reading.value),
    )
