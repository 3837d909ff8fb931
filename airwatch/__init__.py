"""Air quality notification service."""
