"""
Shared fixtures: in-memory SQLite per test, a controllable clock, and a TestClient
whose get_db is bound to the same in-memory database.
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import applyhub.models  # noqa: F401 - register tables
from applyhub.auth import create_session
from applyhub.database import Base, get_db
from applyhub.main import app
from applyhub.models.ai_usage import AiUsage
from applyhub.models.user import User


class FakeClock:
    """Callable clock for AiRateLimiter; advance() moves simulated time forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def user(db):
    u = User(email="applicant@example.com")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def client(engine):
    testing_session = sessionmaker(bind=engine, autoflush=False)

    def _get_test_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client, db, user):
    """TestClient carrying a valid session cookie for `user`."""
    client.cookies.set("session_token", create_session(db, user.id))
    return client


def seed_usage(db, user_id: str, created_at: datetime, *, tokens: int = 0, success: bool = True) -> AiUsage:
    record = AiUsage(
        user_id=user_id,
        feature_type="autofill",
        response_tokens=tokens,
        total_tokens=tokens,
        success=success,
        error_message=None if success else "provider error",
        created_at=created_at,
    )
    db.add(record)
    db.commit()
    return record
