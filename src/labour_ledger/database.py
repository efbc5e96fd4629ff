"""Database connection and session management."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from labour_ledger.config import get_settings
from labour_ledger.models import Base

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def create_db_engine(database_url: str, isolation_level: str | None = None) -> Engine:
    """Create a database engine.

    In-memory SQLite shares a single connection so that every session sees
    the same database. The isolation level only applies to server databases.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        isolation_level=isolation_level,
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Build the session factory used by the service and API layers."""
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


# Global engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_db(create_tables: bool = True) -> tuple[Engine, sessionmaker[Session]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url, settings.isolation_level)
        _session_factory = make_session_factory(_engine)
    if create_tables:
        Base.metadata.create_all(_engine)
    assert _session_factory is not None
    return _engine, _session_factory


def dispose_db() -> None:
    """Dispose the global engine (used on shutdown and in tests)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Iterator[Session]:
    """Get a database session."""
    _, factory = init_db(create_tables=False)
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def acquire_labour_lock(session: Session, labour_id: str) -> None:
    """Take a transaction-scoped advisory lock for a labour (PostgreSQL only).

    The lock is released automatically on commit or rollback.
    """
    session.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:labour_id))"),
        {"labour_id": labour_id},
    )
