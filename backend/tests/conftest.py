# backend/tests/conftest.py
"""
Pytest configuration for the CoachDesk backend.

Tests run against an in-memory SQLite database shared through a single
connection with foreign keys enforced. The schema is rebuilt for every
test, so fixtures commit freely.
"""

import os

# Set testing mode BEFORE any app imports
os.environ["IS_TESTING"] = "true"
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("EVENT_DISPATCH_MODE", "inline")

from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app import models  # noqa: F401
from app.auth import create_access_token, get_password_hash
from app.core.enums import ClientCoachStatus, UserType
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models.client import ClientCoach
from app.models.user import User
from app.services.auth_service import build_token_claims
from app.services.messaging.connection_manager import connection_manager


def _reset_connection_manager() -> None:
    for timer in connection_manager._typing_timers.values():
        timer.cancel()
    connection_manager._typing_timers.clear()
    connection_manager._background_tasks.clear()
    connection_manager.connections.clear()
    connection_manager.rooms.clear()
    connection_manager._loop = None


@pytest.fixture(autouse=True)
def _schema() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    _reset_connection_manager()
    yield
    _reset_connection_manager()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running, so the gateway loop is bound."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def test_password() -> str:
    return "TestPassword123"


def _create_user(db: Session, password: str, **fields: object) -> User:
    user = User(hashed_password=get_password_hash(password), is_active=True, is_verified=True, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_admin(db: Session, test_password: str) -> User:
    return _create_user(
        db,
        test_password,
        email="admin@example.com",
        first_name="Ada",
        last_name="Admin",
        user_type=UserType.ADMIN.value,
    )


@pytest.fixture
def test_coach(db: Session, test_password: str) -> User:
    return _create_user(
        db,
        test_password,
        email="coach@example.com",
        first_name="Casey",
        last_name="Coach",
        user_type=UserType.COACH.value,
        business_name="Casey Coaching",
    )


@pytest.fixture
def test_coach_2(db: Session, test_password: str) -> User:
    return _create_user(
        db,
        test_password,
        email="coach2@example.com",
        first_name="Morgan",
        last_name="Mentor",
        user_type=UserType.COACH.value,
    )


@pytest.fixture
def test_client_user(db: Session, test_password: str) -> User:
    return _create_user(
        db,
        test_password,
        email="client@example.com",
        first_name="Riley",
        last_name="Client",
        user_type=UserType.CLIENT.value,
    )


@pytest.fixture
def test_client_user_2(db: Session, test_password: str) -> User:
    return _create_user(
        db,
        test_password,
        email="client2@example.com",
        first_name="Jordan",
        last_name="Learner",
        user_type=UserType.CLIENT.value,
    )


@pytest.fixture
def linked_client(db: Session, test_coach: User, test_client_user: User) -> User:
    """``test_client_user`` on ``test_coach``'s roster."""
    db.add(
        ClientCoach(
            client_id=test_client_user.id,
            coach_id=test_coach.id,
            status=ClientCoachStatus.ACTIVE.value,
            is_primary=True,
        )
    )
    db.commit()
    return test_client_user


def headers_for(user: User) -> Dict[str, str]:
    token = create_access_token(build_token_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers() -> Callable[[User], Dict[str, str]]:
    return headers_for


@pytest.fixture
def auth_headers_admin(test_admin: User) -> Dict[str, str]:
    return headers_for(test_admin)


@pytest.fixture
def auth_headers_coach(test_coach: User) -> Dict[str, str]:
    return headers_for(test_coach)


@pytest.fixture
def auth_headers_coach_2(test_coach_2: User) -> Dict[str, str]:
    return headers_for(test_coach_2)


@pytest.fixture
def auth_headers_client(test_client_user: User) -> Dict[str, str]:
    return headers_for(test_client_user)
