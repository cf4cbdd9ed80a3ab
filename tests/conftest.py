import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")
os.environ.setdefault("CONTEXTGATE_AUDIT_ENABLED", "true")

from contextgate.db import DB, ContextDatabase
from contextgate.models import Base
from contextgate.repositories import (
    SqlContextualTodoRepository,
    SqlKnownIssueRepository,
    SqlUserDecisionRepository,
    SqlUserGoalRepository,
    SqlUserPreferenceRepository,
)


class FakeClock:
    """Deterministic clock for repositories; advances only when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: int = 60):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def at(minutes: int) -> datetime:
    return datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)


@pytest.fixture
def database(tmp_path):
    handle = ContextDatabase.from_url(f"sqlite:///{tmp_path / 'context.sqlite'}", lock_timeout=5.0)
    Base.metadata.create_all(handle.engine)
    try:
        yield handle
    finally:
        handle.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_session(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def decision_repo(database, clock):
    return SqlUserDecisionRepository(database, actor="tester", clock=clock)


@pytest.fixture
def goal_repo(database, clock):
    return SqlUserGoalRepository(database, actor="tester", clock=clock)


@pytest.fixture
def preference_repo(database, clock):
    return SqlUserPreferenceRepository(database, actor="tester", clock=clock)


@pytest.fixture
def issue_repo(database, clock):
    return SqlKnownIssueRepository(database, actor="tester", clock=clock)


@pytest.fixture
def todo_repo(database, clock):
    return SqlContextualTodoRepository(database, actor="tester", clock=clock)


@pytest.fixture
def server_db(database):
    previous = (DB.handle, DB.engine, DB.SessionLocal)
    DB.handle = database
    DB.engine = database.engine
    DB.SessionLocal = database.SessionLocal
    try:
        yield database
    finally:
        DB.handle, DB.engine, DB.SessionLocal = previous
