# backend/tests/conftest.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from invite_gate.db.init_db import init_db
from invite_gate.services.invitation_store import InvitationStore
from invite_gate.services.invitations import InvitationService


class FakeClock:
    """Controllable clock shared by the store and the service."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture()
def engine():
    """
    Shared in-memory SQLite.

    StaticPool keeps a single connection so the in-memory DB survives across
    sessions (FastAPI opens a new session per request).
    """
    eng = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def SessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(SessionLocal):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def offset_clock():
    """Same wall-clock instant as `clock`, reported at +02:00."""
    return FakeClock(datetime(2026, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2))))


@pytest.fixture()
def store(db, clock):
    return InvitationStore(db, clock=clock)


@pytest.fixture()
def service(store, clock):
    return InvitationService(store, clock=clock)
