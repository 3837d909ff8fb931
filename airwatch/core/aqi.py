"""US EPA style AQI buckets with health guidance.

Each bucket covers values up to and including ``upper``; the last bucket is
open ended. Lookups are pure functions of the numeric reading.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class ReadingSnapshot:
    """A point-in-time value for an environmental metric."""

    value: float
    category: str
    timestamp: datetime
    location: Optional[str] = None
    dominant_pollutant: Optional[str] = None


@dataclass(frozen=True)
class AQIBucket:
    upper: Optional[float]
    label: str
    color: str
    recommendations: Tuple[str, ...]
    protection_measures: Tuple[str, ...]


AQI_BUCKETS: Tuple[AQIBucket, ...] = (
    AQIBucket(
        upper=50,
        label="Good",
        color="#10b981",
        recommendations=(
            "Air quality is considered satisfactory, and air pollution poses little or no risk.",
            "Enjoy outdoor activities.",
        ),
        protection_measures=("No special measures needed.", "Enjoy outdoor activities."),
    ),
    AQIBucket(
        upper=100,
        label="Moderate",
        color="#f59e0b",
        recommendations=(
            "Air quality is acceptable; however, there may be a moderate health concern for a very small number of people.",
            "Unusually sensitive people should consider reducing prolonged or heavy exertion.",
        ),
        protection_measures=(
            "Consider reducing prolonged outdoor exertion if you are unusually sensitive to air pollution.",
            "Keep windows closed during peak traffic hours.",
        ),
    ),
    AQIBucket(
        upper=150,
        label="Unhealthy for Sensitive Groups",
        color="#f97316",
        recommendations=(
            "Members of sensitive groups may experience health effects.",
            "People with heart or lung disease, older adults, and children should reduce prolonged or heavy exertion.",
        ),
        protection_measures=(
            "Reduce prolonged or heavy outdoor exertion.",
            "Take more breaks during outdoor activities.",
            "Consider using air purifiers indoors.",
        ),
    ),
    AQIBucket(
        upper=200,
        label="Unhealthy",
        color="#ef4444",
        recommendations=(
            "Everyone may begin to experience health effects; members of sensitive groups may experience more serious health effects.",
            "People with heart or lung disease, older adults, and children should avoid prolonged or heavy exertion.",
            "Everyone else should reduce prolonged or heavy exertion.",
        ),
        protection_measures=(
            "Avoid prolonged or heavy outdoor exertion.",
            "Use air purifiers indoors.",
            "Keep windows and doors closed.",
            "Consider wearing N95 masks outdoors.",
        ),
    ),
    AQIBucket(
        upper=300,
        label="Very Unhealthy",
        color="#8b5cf6",
        recommendations=(
            "Health warnings of emergency conditions. The entire population is more likely to be affected.",
            "People with heart or lung disease, older adults, and children should avoid all physical activity outdoors.",
            "Everyone else should avoid prolonged or heavy exertion.",
        ),
        protection_measures=(
            "Avoid all outdoor physical activities.",
            "Run air purifiers continuously.",
            "Seal windows and doors to prevent outdoor air infiltration.",
            "Wear N95 masks when outdoors.",
            "Consider relocating temporarily if possible.",
        ),
    ),
    AQIBucket(
        upper=None,
        label="Hazardous",
        color="#7f1d1d",
        recommendations=(
            "Health alert: everyone may experience more serious health effects.",
            "Everyone should avoid all physical activity outdoors.",
            "People with heart or lung disease, older adults, and children should remain indoors and keep activity levels low.",
            "Consider using air purifiers and wearing masks (N95 or better) if going outside is unavoidable.",
        ),
        protection_measures=(
            "Stay indoors with windows and doors closed.",
            "Run multiple air purifiers with HEPA filters.",
            "Avoid all outdoor activities.",
            "Wear N95 or better masks if going outside is unavoidable.",
            "Consider evacuation to areas with better air quality if possible.",
            "Create a clean room in your home with extra air filtration.",
        ),
    ),
)


def bucket_for(value: float) -> AQIBucket:
    """Return the bucket containing ``value``."""

    for bucket in AQI_BUCKETS:
        if bucket.upper is None or value <= bucket.upper:
            return bucket
    return AQI_BUCKETS[-1]


def aqi_category(value: float) -> Tuple[str, str]:
    """Return ``(label, color)`` for an AQI value."""

    bucket = bucket_for(value)
    return bucket.label, bucket.color


def health_recommendations(value: float) -> list[str]:
    return list(bucket_for(value).recommendations)


def protection_measures(value: float) -> list[str]:
    return list(bucket_for(value).protection_measures)


def format_value(value: float) -> str:
    """Render integral readings without a trailing ``.0``."""

    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"
