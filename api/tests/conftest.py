import os

# Settings require DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from leitner_box.core.clock import FixedClock, get_clock
from leitner_box.core.database import get_session
from leitner_box.main import app
from leitner_box.models import LeitnerCard  # noqa: F401

NOW = datetime(2024, 1, 1, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def client(engine, clock):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_card():
    """Factory for unsaved cards with sensible defaults."""
    def _make_card(**overrides) -> LeitnerCard:
        values = dict(
            owner_id=1,
            word="APPLE",
            stage=1,
            next_review_at=NOW,
            created_at=NOW,
            updated_at=NOW,
        )
        values.update(overrides)
        return LeitnerCard(**values)
    return _make_card
