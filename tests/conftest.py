"""
Pytest configuration and fixtures.
Tests run against an isolated SQLite file, never the configured PostgreSQL database.
"""

import os
import tempfile
from datetime import time

import pytest

# Set test database URL BEFORE importing app: settings and engine are module-level
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "activity_booking_test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"

from fastapi.testclient import TestClient  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Activity, CapacityTemplateEntry, Tenant  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    yield
    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        try:
            os.remove(TEST_DB_PATH)
        except PermissionError:
            pass


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant(db):
    tenant = Tenant(name="Fethiye Tours")
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture
def make_activity(db, tenant):
    """Factory: activity with one template entry per (weekdays, time, seats)."""

    def _make(name="City Tour", entries=(("0,1,2,3,4,5,6", time(10, 0), 20),), aliases=None):
        activity = Activity(tenant_id=tenant.id, name=name, name_aliases=aliases or [])
        for weekdays, start_time, seats in entries:
            activity.capacity_templates.append(
                CapacityTemplateEntry(weekdays=weekdays, start_time=start_time, seats=seats)
            )
        db.add(activity)
        db.commit()
        db.refresh(activity)
        return activity

    return _make


@pytest.fixture
def client():
    """Test client without lifespan: tables come from ``fresh_schema``."""
    return TestClient(app)


@pytest.fixture
def headers(tenant):
    return {"X-Tenant-ID": str(tenant.id)}
