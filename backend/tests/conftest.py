"""Pytest fixtures — file-backed SQLite database per test, shareable across threads."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("QR_CODE_SECRET", "test-only-secret")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from eventpass.database import Base, get_db
from eventpass.deps import get_codec
from eventpass.main import app
from eventpass.services import event_service
from eventpass.services.credential_codec import CredentialCodec

# Import all models so they register with Base.metadata
from eventpass.models.user import User                  # noqa: F401
from eventpass.models.event import Event                # noqa: F401
from eventpass.models.registration import Registration  # noqa: F401
from eventpass.models.scan_log import ScanLog           # noqa: F401

TEST_SECRET = "unit-test-hmac-secret"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite file for each test (threads get their own connections)."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def codec():
    return CredentialCodec(TEST_SECRET)


@pytest.fixture(scope="function")
def client(session_factory, codec):
    """FastAPI TestClient with the database and codec dependencies overridden."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_codec] = lambda: codec
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: direct database setup for service-level tests
# ---------------------------------------------------------------------------
def make_user(db, name: str = "Test Student") -> User:
    user = User(display_name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_event(db, capacity: int = 10, title: str = "Hackathon",
               deadline_in: timedelta = timedelta(days=1),
               ends_in: timedelta = timedelta(days=2)) -> Event:
    now = datetime.now(timezone.utc)
    return event_service.create_event(
        db=db,
        title=title,
        date=now + ends_in,
        registration_deadline=now + deadline_in,
        max_participants=capacity,
    )


# ---------------------------------------------------------------------------
# Helpers: API setup, return the response JSON
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test Student") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"display_name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, capacity: int = 10, title: str = "Hackathon",
                      deadline_in: timedelta = timedelta(days=1),
                      ends_in: timedelta = timedelta(days=2)) -> dict:
    """Helper — POST /api/events and return response JSON."""
    now = datetime.now(timezone.utc)
    resp = client.post("/api/events/", json={
        "title": title,
        "date": (now + ends_in).isoformat(),
        "registration_deadline": (now + deadline_in).isoformat(),
        "max_participants": capacity,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
