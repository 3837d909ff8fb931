"""User management endpoints."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from airwatch.api import deps
from airwatch.db.models.user import User
from airwatch.schemas import UserCreate, UserRead, UserUpdate
from airwatch.services.users import DuplicateUserError, UserNotFoundError, UserService
from airwatch.utils.cache import cache_backend
from airwatch.utils.exceptions import (
    StoreError,
    handle_config_error,
    handle_not_found_error,
    handle_store_error,
)

router = APIRouter(prefix="/users", tags=["users"])

PROFILE_NAMESPACE = "user:profile"
PROFILE_TTL_SECONDS = 300


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserCreate, db: Session = Depends(deps.get_db)) -> User:
    """Register a user and create their default notification preference."""

    if not payload.name or not payload.phone_number:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and phone number are required",
        )

    service = UserService(db)
    try:
        return service.register(payload.model_dump())
    except DuplicateUserError as exc:
        raise handle_config_error(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc


@router.get("/{user_id}", response_model=UserRead)
def read_user(user_id: uuid.UUID, db: Session = Depends(deps.get_db)) -> UserRead:
    """Fetch a user profile."""

    cached = cache_backend.get(PROFILE_NAMESPACE, str(user_id))
    if cached is not None:
        return cached

    service = UserService(db)
    try:
        user = service.get(user_id)
    except UserNotFoundError as exc:
        raise handle_not_found_error(exc) from exc
    payload = UserRead.model_validate(user).model_dump(mode="json", by_alias=True)
    cache_backend.set(PROFILE_NAMESPACE, str(user_id), payload, ttl_seconds=PROFILE_TTL_SECONDS)
    return payload


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(deps.get_db),
) -> User:
    """Update profile details of an existing user."""

    service = UserService(db)
    try:
        user = service.get(user_id)
        updated = service.update(user, payload.model_dump(exclude_none=True))
    except UserNotFoundError as exc:
        raise handle_not_found_error(exc) from exc
    except DuplicateUserError as exc:
        raise handle_config_error(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc

    cache_backend.invalidate(PROFILE_NAMESPACE, str(user_id))
    return updated
