from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from odontogram.models import Base
from odontogram.services import chart_storage
from odontogram.services.chart_store import InMemoryChartStore, SqlChartStore


class SteppingClock:
    """Returns a later UTC instant on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def store():
    return InMemoryChartStore()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlChartStore(session_factory)


@pytest.fixture
def clock(monkeypatch):
    ticking = SteppingClock(datetime(2024, 5, 6, 8, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(chart_storage, "_utcnow", ticking)
    return ticking
