# tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from db import get_session, init_db, make_engine
from deps import get_clock
from main import app
from task_store import create_task
from timer import TimerService

from helpers import FakeClock


@pytest.fixture()
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timer(db, clock) -> TimerService:
    return TimerService(db, clock=clock)


@pytest.fixture()
def make_task(db):
    def _make(title: str = "Write report", user_id: str = "u1", category: str = "Work"):
        return create_task(db, user_id, title, category=category)

    return _make


@pytest.fixture()
def client(engine, clock):
    """
    TestClient bound to the in-memory engine and the fake clock.

    Tests using it set up data through the API, not the db fixture: both
    would share the single in-memory connection.
    """

    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
