"""Utility helpers package."""

from airwatch.utils.cache import CacheBackend, cache_backend

__all__ = ["CacheBackend", "cache_backend"]
