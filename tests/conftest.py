"""Pytest fixtures for labour ledger tests."""

from __future__ import annotations

from collections.abc import Generator
from datetime import date
from uuid import UUID

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from labour_ledger.database import create_db_engine, make_session_factory
from labour_ledger.facade import LabourLedger
from labour_ledger.models import Base

# In-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a fresh test database for each test."""
    engine = create_db_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def ledger(session: Session) -> LabourLedger:
    """Ledger facade whose clock is pinned to 2024-03-01."""
    return LabourLedger(session, clock=lambda: date(2024, 3, 1))


@pytest.fixture
def labour_id(ledger: LabourLedger) -> UUID:
    """An active labour with a zero opening balance."""
    result = ledger.create_labour("Ramesh Kumar")
    assert result.ok
    return result.labour_id
