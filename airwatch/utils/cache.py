"""Caching and short-lived locks with optional Redis backing."""

from __future__ import annotations

import importlib
import importlib.util
import json
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from airwatch.config import settings


def _json_default(value: Any) -> Any:
    """Serialize values not supported by ``json`` out of the box."""

    if hasattr(value, "isoformat"):
        return value.isoformat()  # datetime and date objects
    if isinstance(value, set):
        return sorted(value)
    if hasattr(value, "__str__"):
        return str(value)
    raise TypeError(f"Object of type {type(value)!r} is not JSON serializable")


_redis_module = None
if importlib.util.find_spec("redis") is not None:
    _redis_module = importlib.import_module("redis")


@dataclass
class _CacheEntry:
    expires_at: float | None
    payload: str


class CacheBackend:
    """Cache and lock backend writing to Redis when available.

    Every operation also keeps an in-process copy so that a Redis outage
    degrades to single-process behaviour instead of failing the caller.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        self._lock = threading.Lock()
        self._local: dict[str, _CacheEntry] = {}
        self._held: dict[str, tuple[str, float]] = {}
        self._redis = None
        if redis_url and _redis_module is not None:
            self._redis = _redis_module.Redis.from_url(redis_url, decode_responses=True)

    @staticmethod
    def _compose(namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def get(self, namespace: str, key: str) -> Any | None:
        namespaced = self._compose(namespace, key)
        if self._redis is not None:
            try:
                value = self._redis.get(namespaced)
            except Exception:
                self._redis = None
            else:
                if value is not None:
                    return json.loads(value)
        with self._lock:
            entry = self._local.get(namespaced)
            if not entry:
                return None
            if entry.expires_at is not None and entry.expires_at < time.time():
                self._local.pop(namespaced, None)
                return None
            return json.loads(entry.payload)

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int) -> None:
        namespaced = self._compose(namespace, key)
        payload = json.dumps(value, default=_json_default)
        if self._redis is not None:
            try:
                self._redis.set(namespaced, payload, ex=ttl_seconds)
            except Exception:
                self._redis = None
        with self._lock:
            expires_at = time.time() + ttl_seconds if ttl_seconds else None
            self._local[namespaced] = _CacheEntry(expires_at=expires_at, payload=payload)

    def invalidate(self, namespace: str, key: str) -> None:
        namespaced = self._compose(namespace, key)
        if self._redis is not None:
            try:
                self._redis.delete(namespaced)
            except Exception:
                self._redis = None
        with self._lock:
            self._local.pop(namespaced, None)

    def acquire(self, namespace: str, key: str, ttl_seconds: int) -> str | None:
        """Try to take a lock without blocking; return its owner token or ``None``."""

        namespaced = self._compose(f"lock:{namespace}", key)
        token = uuid.uuid4().hex
        if self._redis is not None:
            try:
                acquired = self._redis.set(namespaced, token, nx=True, ex=ttl_seconds)
            except Exception:
                self._redis = None
            else:
                return token if acquired else None
        with self._lock:
            now = time.time()
            held = self._held.get(namespaced)
            if held is not None and held[1] > now:
                return None
            self._held[namespaced] = (token, now + ttl_seconds)
            return token

    def release(self, namespace: str, key: str, token: str) -> None:
        """Release a lock previously returned by :meth:`acquire`."""

        namespaced = self._compose(f"lock:{namespace}", key)
        if self._redis is not None:
            try:
                if self._redis.get(namespaced) == token:
                    self._redis.delete(namespaced)
            except Exception:
                self._redis = None
        with self._lock:
            held = self._held.get(namespaced)
            if held is not None and held[0] == token:
                self._held.pop(namespaced, None)

    @contextmanager
    def hold(self, namespace: str, key: str, ttl_seconds: int) -> Iterator[bool]:
        """Context manager yielding whether the lock was obtained."""

        token = self.acquire(namespace, key, ttl_seconds)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.release(namespace, key, token)

    def clear(self, *, include_redis: bool = False) -> None:
        """Reset the in-memory cache and locks (and optionally Redis) for test environments."""

        with self._lock:
            self._local.clear()
            self._held.clear()
        if include_redis and self._redis is not None:
            try:
                self._redis.flushdb()
            except Exception:
                self._redis = None


cache_backend = CacheBackend(str(settings.REDIS_URL) if settings.REDIS_URL else None)


__all__ = ["cache_backend", "CacheBackend"]
