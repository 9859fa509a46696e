import os
from pathlib import Path

os.environ.setdefault("PYTEST_RUN", "1")
os.environ.setdefault("REDIS_URL", "disabled")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from dotenv import load_dotenv
from unittest.mock import AsyncMock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import stagelink.models  # noqa: F401  register every table
from stagelink.models.base import BaseModel
from stagelink.models import ProfileType, User
from stagelink.services import profiles as profile_service
from stagelink.utils import redis_cache

# Load environment variables for tests
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')


# Patch notifications broadcast for all tests
@pytest.fixture(autouse=True)
def patch_notifications_broadcast(monkeypatch):
    """Replace NotificationsManager.broadcast with an AsyncMock."""
    mock = AsyncMock()
    monkeypatch.setattr(
        "stagelink.utils.notifications.notifications_manager.broadcast",
        mock,
    )
    return mock


@pytest.fixture(autouse=True)
def reset_redis_client(monkeypatch):
    monkeypatch.setattr(redis_cache, "_redis_client", None)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    BaseModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(first_name="Test", last_name="User", email=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@test.com",
            password="x",
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_profile(db, make_user):
    """Create a user owning one profile of ``type``; returns (user, profile)."""

    def _make(type=ProfileType.ARTIST, name=None, user=None, **fields):
        user = user or make_user(first_name=(name or type.value).split()[0])
        profile = profile_service.create_profile(
            db, user, type, name or f"{type.value.title()} Profile", **fields
        )
        profile_service.activate_profile(db, user, profile.id)
        return user, profile

    return _make


@pytest.fixture
def artist(make_profile):
    return make_profile(ProfileType.ARTIST, "The Lanterns")


@pytest.fixture
def venue(make_profile):
    return make_profile(ProfileType.VENUE, "Blue Room", location="Austin, TX")
