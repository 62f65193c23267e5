"""Pytest fixtures: a file-backed SQLite database per test and a TestClient bound to it."""
import os

# The app's own engine is only touched by the startup create_all; keep it in memory.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from eventhub.database import Base, build_engine, get_db
from eventhub.main import app

# Import all models so they register with Base.metadata
from eventhub.models.user import User               # noqa: F401
from eventhub.models.event import Event             # noqa: F401
from eventhub.models.attendee import EventAttendee  # noqa: F401


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}", timeout=5.0)

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
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ---------------------------------------------------------------------------
# Helpers: drive the API and return response JSON
# ---------------------------------------------------------------------------
def register_user(client: TestClient, name: str = "Test User", email: str = None, password: str = "secret") -> dict:
    """Helper: POST /api/register and return ``{"token", "user"}``."""
    email = email or f"{name.lower().replace(' ', '.')}@example.com"
    resp = client.post("/api/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()


def auth(account: dict) -> dict:
    """Authorization header for an account returned by ``register_user``."""
    return {"Authorization": f"Bearer {account['token']}"}


def create_test_event(client: TestClient, account: dict, title: str = "Test Event",
                      date: str = "2030-05-01T18:00:00", category: str = "music",
                      description: str = "") -> dict:
    """Helper: POST /api/events as ``account`` and return the event JSON."""
    resp = client.post("/api/events", headers=auth(account), json={
        "title": title,
        "description": description,
        "date": date,
        "category": category,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def attendee_ids(event: dict) -> list:
    return [a["id"] for a in event["attendees"]]
