"""Pydantic models for user API interactions."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict, EmailStr, Field, model_validator

from airwatch.schemas.base import APIModel

NotificationType = Literal["airQuality", "waterQuality", "uvIndex", "trafficAlerts"]
NotificationMethod = Literal["sms", "email", "push"]


class UserProfile(APIModel):
    """Shared optional profile properties."""

    email: Optional[EmailStr] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    notification_types: list[NotificationType] = Field(default_factory=list)
    notification_methods: list[NotificationMethod] = Field(default_factory=list)
    area_of_interest: Optional[str] = Field(default=None, max_length=255)


class UserCreate(UserProfile):
    """Schema for user registration input."""

    name: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)

    model_config = ConfigDict(extra="forbid")


class UserRead(UserProfile):
    """Schema returned after user registration or retrieval."""

    id: uuid.UUID
    name: str
    phone_number: str
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(APIModel):
    """Schema for partial updates to a user profile."""

    name: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    conditions: Optional[list[str]] = None
    medications: Optional[list[str]] = None
    allergies: Optional[list[str]] = None
    notification_types: Optional[list[NotificationType]] = None
    notification_methods: Optional[list[NotificationMethod]] = None
    area_of_interest: Optional[str] = Field(default=None, max_length=255)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def ensure_payload_not_empty(self) -> "UserUpdate":
        if not any(value is not None for value in self.model_dump().values()):
            raise ValueError("At least one field must be provided")
        return self
