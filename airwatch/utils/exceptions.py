"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class AirWatchError(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(AirWatchError):
    """Malformed preference fields, e.g. an unparsable notification time."""
    pass


class NotFoundError(AirWatchError):
    """A preference, history entry or user does not exist."""
    pass


class TransportError(AirWatchError):
    """Push delivery failed; ``details`` carries the transport payload."""
    pass


class StoreError(AirWatchError):
    """Persistence layer unavailable or rejected the write."""
    pass


class ReadingProviderError(AirWatchError):
    """The environmental reading could not be fetched or parsed."""
    pass


def handle_store_error(error: Exception) -> HTTPException:
    """Handle persistence errors without leaking internals to the caller."""
    logger.error(f"Store error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Database operation failed. Please try again later."
    )


def handle_not_found_error(error: NotFoundError) -> HTTPException:
    """Handle lookups of absent records."""
    logger.info(f"Not found: {error.message}")
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error.message
    )


def handle_config_error(error: ConfigError) -> HTTPException:
    """Handle preference payloads the store refuses."""
    logger.warning(f"Config error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": error.message,
            "details": error.details
        }
    )


def handle_transport_error(error: TransportError) -> HTTPException:
    """Handle push delivery failures on the synchronous send path."""
    logger.error(f"Push transport error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "message": "Failed to send notification",
            "error": error.details,
        }
    )


def handle_reading_error(error: ReadingProviderError) -> HTTPException:
    """Handle reading provider failures."""
    logger.error(f"Reading provider error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Environmental reading is temporarily unavailable. Please try again later."
    )
