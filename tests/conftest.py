"""Pytest fixtures — SQLite database for fast, isolated tests."""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from gatherpoll.database import Base, get_db, get_public_db
from gatherpoll.main import app

# Import all models so they register with Base.metadata
from gatherpoll.models.user import User                      # noqa: F401
from gatherpoll.models.event import Event, TimeSlot          # noqa: F401
from gatherpoll.models.vote import Vote                      # noqa: F401
from gatherpoll.models.event_mutation import EventMutation   # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

DEFAULT_SLOTS = [
    {"date": "2026-11-02", "start_time": "18:00", "end_time": "20:00"},
    {"date": "2026-11-03", "start_time": "18:00", "end_time": "20:00"},
]


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

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
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """TestClient with both data channels overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_public_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def organizer(db):
    user = User(display_name="Olive Organizer", email="olive@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def participant(db):
    user = User(display_name="Pat Participant", email="pat@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Helpers for HTTP tests
# ---------------------------------------------------------------------------
def auth(user: dict) -> dict:
    """Headers that sign the request in as ``user``."""
    return {"X-User-Id": user["user_id"]}


def create_test_user(client: TestClient, name: str = "Test User", email: str | None = None) -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "display_name": name,
        "email": email or f"{name.lower().replace(' ', '.')}@example.com",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, organizer: dict, title: str = "Game Night",
                      slots: list | None = None, **extra) -> dict:
    """Helper — POST /api/events and return response JSON ({event, slots})."""
    resp = client.post("/api/events/", headers=auth(organizer), json={
        "title": title,
        "slots": slots if slots is not None else DEFAULT_SLOTS,
        **extra,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
