"""Labour ledger - running wage balances with backdated reconciliation."""

from labour_ledger.facade import LabourLedger, MutationResult, MutationStatus, StatementLine
from labour_ledger.ledger.engine import EventKind, LedgerEvent, Reconciliation, reconcile

__version__ = "1.0.0"

__all__ = [
    "LabourLedger",
    "MutationResult",
    "MutationStatus",
    "StatementLine",
    "EventKind",
    "LedgerEvent",
    "Reconciliation",
    "reconcile",
]
