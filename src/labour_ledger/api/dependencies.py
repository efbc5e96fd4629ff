"""FastAPI dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from labour_ledger.database import init_db
from labour_ledger.facade import LabourLedger


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    _, factory = init_db(create_tables=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


def get_ledger(session: Annotated[Session, Depends(get_db_session)]) -> LabourLedger:
    """Build the ledger facade over the request session."""
    return LabourLedger(session)


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db_session)]
Ledger = Annotated[LabourLedger, Depends(get_ledger)]
