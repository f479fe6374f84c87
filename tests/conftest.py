"""Pytest fixtures and configuration for NekoTasks tests."""

import os

# Keep the module-level engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from nekotasks.database.database import Base, get_db
from nekotasks.database import models  # noqa: F401
from nekotasks.database.repository import ItemRepository
from nekotasks.database.label_repository import LabelRepository
from nekotasks.models.item import CalendarItem, ItemType
from nekotasks.notifications.reminders import InMemoryNotificationCenter, ReminderManager
from nekotasks.recurrence.calendar import GREGORIAN_US


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def item_repository(db_session: Session):
    """Create an ItemRepository instance for testing."""
    return ItemRepository(db_session)


@pytest.fixture
def label_repository(db_session: Session):
    """Create a LabelRepository instance for testing."""
    return LabelRepository(db_session)


@pytest.fixture
def sample_item_base():
    """Base item data for creating test items.

    Returns a dict with default attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "title": "Test Item",
        "description": "Test notes",
        "item_type": ItemType.EVENT,
        "created_at": datetime(2026, 1, 1, 8, 0),
        "deadline": None,
        "start_time": None,
        "end_time": None,
        "is_completed": False,
        "is_recurring": False,
        "recurrence_rule": None,
        "label_ids": [],
    }


@pytest.fixture
def sample_event(sample_item_base):
    """One-time event on Monday 2026-01-26 at 10:00."""
    return CalendarItem(**{
        **sample_item_base,
        "title": "Dentist",
        "start_time": datetime(2026, 1, 26, 10, 0),
        "end_time": datetime(2026, 1, 26, 11, 0),
    })


@pytest.fixture
def sample_task(sample_item_base):
    """Task due Tuesday 2026-01-27 at 17:30."""
    return CalendarItem(**{
        **sample_item_base,
        "title": "File report",
        "item_type": ItemType.TASK,
        "deadline": datetime(2026, 1, 27, 17, 30, 45),
    })


@pytest.fixture
def reminder_manager():
    """Reminder manager over an in-memory notification center with a fixed clock."""
    return ReminderManager(InMemoryNotificationCenter(), clock=lambda: datetime(2026, 1, 27, 9, 0))


@pytest.fixture
def test_client(db_session: Session, reminder_manager):
    """Create a FastAPI test client with overridden database, reminder and calendar dependencies."""
    from nekotasks.api.app import app, get_calendar, get_reminders

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reminders] = lambda: reminder_manager
    app.dependency_overrides[get_calendar] = lambda: GREGORIAN_US

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
