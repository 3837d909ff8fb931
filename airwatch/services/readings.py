"""Environmental reading providers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx
from loguru import logger
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from airwatch.config import Settings
from airwatch.core.aqi import ReadingSnapshot, aqi_category
from airwatch.utils.cache import CacheBackend
from airwatch.utils.exceptions import ReadingProviderError


class ReadingProvider(Protocol):
    """Protocol shared by reading provider implementations."""

    def get_current_reading(self, location: Optional[str] = None) -> ReadingSnapshot:  # pragma: no cover - interface definition
        """Return the current snapshot for ``location``."""


@dataclass
class StaticReadingProvider:
    """Return a fixed AQI value; used for development and demos."""

    value: float = 489
    location: str = "DITE Okhla, Delhi"
    dominant_pollutant: Optional[str] = "pm10"

    def get_current_reading(self, location: Optional[str] = None) -> ReadingSnapshot:
        label, _ = aqi_category(self.value)
        return ReadingSnapshot(
            value=self.value,
            category=label,
            timestamp=datetime.now(timezone.utc),
            location=location or self.location,
            dominant_pollutant=self.dominant_pollutant,
        )


@dataclass
class WAQIReadingProvider:
    """Fetch the current AQI from the World Air Quality Index feed API."""

    token: str
    default_location: str = "delhi"
    base_url: str = "https://api.waqi.info"
    request_timeout: float = 5.0
    transport: Optional[httpx.BaseTransport] = None

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        before_sleep=before_sleep_log(logger, "warning"),
        reraise=True,
    )
    def _fetch(self, location: str) -> Dict[str, Any]:
        with httpx.Client(
            base_url=self.base_url, timeout=self.request_timeout, transport=self.transport
        ) as client:
            response = client.get(f"/feed/{location}/", params={"token": self.token})

        if response.status_code >= 400:
            logger.error("WAQI returned error", status=response.status_code, body=response.text)
            raise ReadingProviderError(
                f"WAQI error {response.status_code}", {"body": response.text}
            )
        return response.json()

    def get_current_reading(self, location: Optional[str] = None) -> ReadingSnapshot:
        location = location or self.default_location
        try:
            payload = self._fetch(location)
        except httpx.HTTPError as exc:
            raise ReadingProviderError(f"WAQI request failed: {exc}") from exc

        if payload.get("status") != "ok":
            raise ReadingProviderError("WAQI response not ok", {"payload": payload.get("data")})

        data = payload.get("data") or {}
        try:
            value = float(data["aqi"])
        except (KeyError, TypeError, ValueError) as exc:
            # The feed reports "-" when a station has no current value
            raise ReadingProviderError("WAQI response has no usable AQI", {"aqi": data.get("aqi")}) from exc

        observed = (data.get("time") or {}).get("iso")
        try:
            timestamp = datetime.fromisoformat(observed) if observed else datetime.now(timezone.utc)
        except ValueError:
            timestamp = datetime.now(timezone.utc)

        label, _ = aqi_category(value)
        snapshot = ReadingSnapshot(
            value=value,
            category=label,
            timestamp=timestamp,
            location=(data.get("city") or {}).get("name") or location,
            dominant_pollutant=data.get("dominentpol"),
        )
        logger.info("WAQI reading fetched", location=snapshot.location, aqi=snapshot.value)
        return snapshot


class CachedReadingProvider:
    """Reuse a fetched reading for ``ttl_seconds`` to bound provider calls."""

    NAMESPACE = "reading"

    def __init__(self, provider: ReadingProvider, cache: CacheBackend, ttl_seconds: int) -> None:
        self._provider = provider
        self._cache = cache
        self._ttl = ttl_seconds

    def get_current_reading(self, location: Optional[str] = None) -> ReadingSnapshot:
        key = location or "default"
        cached = self._cache.get(self.NAMESPACE, key)
        if cached is not None:
            return ReadingSnapshot(
                value=cached["value"],
                category=cached["category"],
                timestamp=datetime.fromisoformat(cached["timestamp"]),
                location=cached.get("location"),
                dominant_pollutant=cached.get("dominant_pollutant"),
            )

        snapshot = self._provider.get_current_reading(location)
        if self._ttl:
            self._cache.set(
                self.NAMESPACE,
                key,
                {
                    "value": snapshot.value,
                    "category": snapshot.category,
                    "timestamp": snapshot.timestamp.isoformat(),
                    "location": snapshot.location,
                    "dominant_pollutant": snapshot.dominant_pollutant,
                },
                ttl_seconds=self._ttl,
            )
        return snapshot


def build_reading_provider(settings: Settings, cache: Optional[CacheBackend] = None) -> ReadingProvider:
    """Return the provider selected by ``READING_PROVIDER``, cached when a backend is given."""

    provider: ReadingProvider
    if settings.READING_PROVIDER == "waqi":
        if not settings.WAQI_API_TOKEN:
            raise ReadingProviderError("WAQI_API_TOKEN is required for the waqi reading provider")
        provider = WAQIReadingProvider(
            token=settings.WAQI_API_TOKEN,
            default_location=settings.READING_LOCATION,
            base_url=settings.WAQI_API_BASE,
            request_timeout=settings.READING_TIMEOUT_SECONDS,
        )
    else:
        provider = StaticReadingProvider(value=settings.READING_STATIC_VALUE)

    if cache is not None and settings.READING_CACHE_SECONDS:
        return CachedReadingProvider(provider, cache, settings.READING_CACHE_SECONDS)
    return provider
