"""SQLAlchemy ORM models."""

from labour_ledger.models.base import Base, TimestampMixin
from labour_ledger.models.labour import Labour
from labour_ledger.models.ledger import AttendanceStatus, Payment, WorkEntry

__all__ = [
    "Base",
    "TimestampMixin",
    "Labour",
    "WorkEntry",
    "Payment",
    "AttendanceStatus",
]
