"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all MedReminder tests.
Fixtures include database sessions, a fixed clock, a recording push
transport, sample users and medications, and the API test client.
"""

import os
import sys
from datetime import datetime
from typing import Generator

from tests import TEST_DATABASE_URL, VALID_PUSH_TOKEN

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from models import User, DeviceToken, Medication, ReminderSettings
from api.deps import get_sender_job, get_services
from jobs.notification_sender import NotificationSenderJob
from services import build_services, ServiceContainer
from app import app

from tests.fakes import FixedClock, RecordingTransport, add_medication


# Wednesday
FIXED_NOW = datetime(2025, 1, 15, 7, 0)


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def default_sessions(test_engine, monkeypatch):
    """Point sessions opened without a caller-owned session at the test engine"""
    import database

    monkeypatch.setattr(
        database,
        "SessionLocal",
        sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    )


# ==================== CLOCK AND TRANSPORT ====================

@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at Wednesday 2025-01-15 07:00"""
    return FixedClock(FIXED_NOW)


@pytest.fixture
def services(clock) -> ServiceContainer:
    """Services wired to the fixed clock"""
    return build_services(clock=clock)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sender_job(services, transport, clock) -> NotificationSenderJob:
    return NotificationSenderJob(services.notifications, transport, clock=clock)


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def test_user(db_session: Session) -> User:
    """Create and return a test user"""
    user = User(name="Ana Souza", email="ana.souza@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session: Session) -> User:
    """A second user"""
    user = User(name="Bruno Lima", email="bruno.lima@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_device(db_session: Session, test_user: User) -> DeviceToken:
    """Register a valid push token for the test user"""
    device = DeviceToken(user_id=test_user.id, token=VALID_PUSH_TOKEN, platform="ios")
    db_session.add(device)
    db_session.commit()
    db_session.refresh(device)
    return device


@pytest.fixture
def quiet_settings(db_session: Session, test_user: User) -> ReminderSettings:
    """Quiet hours 22:00-07:00 with a 15 minute lead"""
    row = ReminderSettings(
        user_id=test_user.id,
        enable_push=True,
        enable_email=False,
        reminder_before=15,
        quiet_hours_start="22:00",
        quiet_hours_end="07:00",
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def daily_medication(db_session: Session, test_user: User) -> Medication:
    """DAILY at 08:00 with one derived slot"""
    return add_medication(db_session, test_user)


# ==================== API FIXTURES ====================

@pytest.fixture(scope="function")
def client(db_session: Session, services, sender_job) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database and service overrides"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[get_sender_job] = lambda: sender_job

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
