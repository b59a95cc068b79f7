"""
Shared fixtures: in-memory database, sessions, users and bearer tokens.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["JWT_AUDIENCE"] = "authenticated"

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from core.event_manager import EventManager
from services.profile_service import upsert_profile

BASE_TIME = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return uuid.uuid4()


@pytest.fixture
def bob():
    return uuid.uuid4()


@pytest.fixture
def carol():
    return uuid.uuid4()


def make_token(user_id, secret="test-secret", audience="authenticated", expires_in=3600):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "aud": audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        "email": f"{user_id}@example.com",
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def make_slot(db, user_id, title="Slot", offset_hours=0, duration_hours=1, swappable=True):
    """Create an event for a user, optionally flipped to SWAPPABLE."""
    start = BASE_TIME + timedelta(hours=offset_hours)
    event = EventManager.create_event(
        db, user_id, title, start, start + timedelta(hours=duration_hours)
    )
    if swappable:
        event = EventManager.toggle_swappable(db, user_id, event.id)
    return event


def make_profile(db, user_id, full_name):
    return upsert_profile(db, user_id, full_name)
