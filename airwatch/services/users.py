"""Service layer for user operations."""
from __future__ import annotations

import uuid
from typing import Any, Mapping

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from airwatch.db.models.user import User
from airwatch.services.notification_store import NotificationStore
from airwatch.utils.exceptions import ConfigError, NotFoundError, StoreError


class UserNotFoundError(NotFoundError):
    """Raised when a user lookup fails."""


class DuplicateUserError(ConfigError):
    """Raised when a phone number is already registered."""


class UserService:
    """Encapsulates reusable user-related data access operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID) -> User:
        """Return a user by identifier or raise ``UserNotFoundError``."""

        user = self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError("User not found", {"user_id": str(user_id)})
        return user

    def get_by_phone(self, phone_number: str) -> User | None:
        try:
            return self.db.scalars(select(User).where(User.phone_number == phone_number)).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to look up user by phone", error=str(exc))
            raise StoreError("Failed to look up user", {"error": str(exc)}) from exc

    def register(self, data: Mapping[str, Any]) -> User:
        """Create a user and its default notification preference.

        The preference is enabled only when ``push`` is among the user's
        notification methods. Both rows are written in one commit, so a
        failure leaves neither behind.
        """

        if self.get_by_phone(data["phone_number"]) is not None:
            raise DuplicateUserError("User with this phone number already exists")

        user = User(id=uuid.uuid4(), **data)
        self.db.add(user)
        self.db.add(NotificationStore.new_preference(str(user.id), {"enabled": user.wants_push}))
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateUserError("User with this phone number already exists") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to register user", error=str(exc))
            raise StoreError("Failed to register user", {"error": str(exc)}) from exc
        self.db.refresh(user)

        logger.info("User registered", user_id=str(user.id), push=user.wants_push)
        return user

    def update(self, user: User, data: Mapping[str, Any]) -> User:
        """Persist user profile changes and return the updated entity."""

        for field, value in data.items():
            setattr(user, field, value)

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateUserError("User with this phone number already exists") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to update user", user_id=str(user.id), error=str(exc))
            raise StoreError("Failed to update user", {"error": str(exc)}) from exc
        self.db.refresh(user)
        return user
