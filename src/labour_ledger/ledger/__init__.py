"""Ledger core: reconciliation engine, store, coordinator and repair job."""

from labour_ledger.ledger.coordinator import MutationCoordinator
from labour_ledger.ledger.engine import (
    EventKind,
    LedgerEvent,
    Reconciliation,
    order_events,
    reconcile,
    running_balances,
    to_money,
)
from labour_ledger.ledger.errors import (
    DuplicateEntryError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from labour_ledger.ledger.recalculation import (
    LabourRecalculation,
    RecalculationJob,
    RecalculationReport,
)
from labour_ledger.ledger.store import LedgerStore
from labour_ledger.ledger.verification import ConsistencyReport, Discrepancy, verify_ledgers

__all__ = [
    "MutationCoordinator",
    "EventKind",
    "LedgerEvent",
    "Reconciliation",
    "order_events",
    "reconcile",
    "running_balances",
    "to_money",
    "LedgerError",
    "ValidationError",
    "DuplicateEntryError",
    "NotFoundError",
    "PersistenceError",
    "LedgerStore",
    "RecalculationJob",
    "RecalculationReport",
    "LabourRecalculation",
    "ConsistencyReport",
    "Discrepancy",
    "verify_ledgers",
]
