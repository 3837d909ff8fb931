"""User database model."""
from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from airwatch.db.base import Base
from airwatch.db.types import StringList


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered dashboard user and their health profile."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone_number = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255))

    # Health profile
    age = Column(Integer)
    conditions = Column(StringList, default=list)
    medications = Column(StringList, default=list)
    allergies = Column(StringList, default=list)

    # Interests: airQuality, waterQuality, uvIndex, trafficAlerts / sms, email, push
    notification_types = Column(StringList, default=list)
    notification_methods = Column(StringList, default=list)
    area_of_interest = Column(String(255))

    # Metadata
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @property
    def wants_push(self) -> bool:
        return "push" in (self.notification_methods or [])
