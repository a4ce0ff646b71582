from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from prophecy.api.deps import get_prophecy_engine
from prophecy.db.init_db import init_db
from prophecy.db.session import Base
from prophecy.main import app
from prophecy.services.analytics.prediction_cache import PredictionCache
from prophecy.services.analytics.prophecy_engine import build_prophecy_engine
from tests.factories import AnalyticsEventFactory

# Monday 30 June 2025, 12:00 UTC
FROZEN_NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite database shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a fresh database session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def prediction_cache(clock):
    return PredictionCache(clock=clock)


@pytest.fixture
def prophecy_engine(session_factory, prediction_cache, clock):
    """Engine wired to the test database with an in-memory cache."""
    return build_prophecy_engine(session_factory, cache=prediction_cache, clock=clock)


@pytest.fixture
def add_history(db_session, clock):
    """
    Store one analytics event per day ending the day before the clock.

    Each keyword is a list of per-day values; the oldest event comes first.
    """
    def _add_history(user_id: str = "user-1", views=(), likes=None, comments=None, watch_time=None, hour=12):
        days = len(views)
        events = []
        for i, view_count in enumerate(views):
            posted_at = (clock.now - timedelta(days=days - i)).replace(hour=hour)
            event = AnalyticsEventFactory(
                user_id=user_id,
                views=view_count,
                likes=likes[i] if likes is not None else view_count // 10,
                comments=comments[i] if comments is not None else view_count // 100,
                watch_time=watch_time[i] if watch_time is not None else 35.0,
                posted_at=posted_at,
            )
            db_session.add(event)
            events.append(event)
        db_session.commit()
        return events

    return _add_history


@pytest.fixture
def client(prophecy_engine):
    """HTTP client with the engine dependency pointed at the test database."""
    app.dependency_overrides[get_prophecy_engine] = lambda: prophecy_engine
    yield TestClient(app)
    app.dependency_overrides.clear()
