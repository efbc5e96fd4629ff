"""Ledger error taxonomy.

These exceptions are raised inside the store and coordinator. The
LabourLedger facade converts them into MutationResult statuses, so none
of them crosses the service boundary.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID


class LedgerError(Exception):
    """Base class for ledger errors."""

    code = "LEDGER_ERROR"


class ValidationError(LedgerError):
    """A required field is missing or malformed.

    Raised before any ledger read, so nothing has been written.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class DuplicateEntryError(LedgerError):
    """A work entry already exists for the labour on that date."""

    code = "DUPLICATE_ENTRY"

    def __init__(self, labour_id: UUID, entry_date: date):
        self.labour_id = labour_id
        self.entry_date = entry_date
        super().__init__(
            f"Work entry for labour {labour_id} on {entry_date.isoformat()} already exists"
        )


class NotFoundError(LedgerError):
    """The labour or ledger event does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PersistenceError(LedgerError):
    """The underlying store failed while writing a cascade."""

    code = "PERSISTENCE_FAILURE"
