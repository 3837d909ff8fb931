"""Pytest fixtures for API and service tests."""

import os
from collections.abc import Generator

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("READING_PROVIDER", "static")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from airwatch.api import deps
from airwatch.db import models  # noqa: F401  # Imported for side effects
from airwatch.db.base import Base
from airwatch.main import create_app
from airwatch.services.notification_store import NotificationStore
from airwatch.services.push import PushMessage, PushResult
from airwatch.services.readings import StaticReadingProvider
from airwatch.utils.cache import cache_backend


class StubPushTransport:
    """Records sends instead of talking to Firebase."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, PushMessage]] = []
        self.fail = False
        self.raise_error: Exception | None = None
        self.closed = False

    def send(self, token: str, message: PushMessage) -> PushResult:
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append((token, message))
        if self.fail:
            return PushResult(
                success=False,
                error={"code": "invalid-argument", "message": "The registration token is not valid"},
            )
        return PushResult(success=True, message_id=f"projects/test/messages/{len(self.sent)}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
        db.close()


@pytest.fixture(autouse=True)
def clear_cache() -> Generator[None, None, None]:
    cache_backend.clear()
    try:
        yield
    finally:
        cache_backend.clear()


@pytest.fixture()
def store(db_session: Session) -> NotificationStore:
    return NotificationStore(db_session)


@pytest.fixture()
def push_transport() -> StubPushTransport:
    return StubPushTransport()


@pytest.fixture()
def reading_provider() -> StaticReadingProvider:
    return StaticReadingProvider(value=180, location="Test Station")


@pytest.fixture()
def app(db_session: Session, push_transport: StubPushTransport, reading_provider: StaticReadingProvider):
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_push_transport] = lambda: push_transport
    app.dependency_overrides[deps.get_reading_provider] = lambda: reading_provider
    return app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
