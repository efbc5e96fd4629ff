"""Labour ledger facade - the single integration path for collaborators.

Usage:
    ledger = LabourLedger(session)

    # Record a day's wage (credits the balance)
    result = ledger.apply_entry(labour_id, date(2024, 1, 1), "100", work_type="masonry", ...)

    # Record a payment (debits the balance)
    result = ledger.apply_payment(labour_id, date(2024, 1, 2), "40", mode="cash")

    # Change or remove any event, including backdated ones
    result = ledger.edit_event(event_id, amount="80")
    result = ledger.delete_event(event_id)

    balance = ledger.get_balance(labour_id)

The facade:
- Runs every mutation in one transaction (event writes + mirror commit together)
- Converts ledger and database errors into typed MutationResult statuses
- Defaults missing dates from the injected clock
- Never lets an exception escape a mutation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labour_ledger.ledger.coordinator import MutationCoordinator
from labour_ledger.ledger.engine import LedgerEvent, running_balances, to_money
from labour_ledger.ledger.errors import (
    DuplicateEntryError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from labour_ledger.ledger.recalculation import RecalculationJob, RecalculationReport
from labour_ledger.ledger.store import LedgerStore, snapshot
from labour_ledger.ledger.validation import EntryDraft, PaymentDraft, parse_uuid
from labour_ledger.ledger.verification import ConsistencyReport, verify_ledgers
from labour_ledger.models import AttendanceStatus, Labour, Payment, WorkEntry
from labour_ledger.services.labour_service import LabourService

logger = logging.getLogger(__name__)


class MutationStatus(str, Enum):
    """Outcome of a ledger mutation."""

    APPLIED = "applied"  # Event written, cascade and mirror committed
    DUPLICATE_ENTRY = "duplicate_entry"  # Labour already has a wage entry that day
    VALIDATION_ERROR = "validation_error"  # Missing or malformed fields
    NOT_FOUND = "not_found"  # Unknown labour or event
    PERSISTENCE_FAILURE = "persistence_failure"  # Store failed; transaction rolled back


@dataclass
class MutationResult:
    """Result of a ledger mutation.

    On any status other than APPLIED nothing was written.
    """

    status: MutationStatus
    labour_id: UUID | None = None
    event: LedgerEvent | None = None
    balance: Decimal | None = None
    error: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED


@dataclass(frozen=True)
class StatementLine:
    """One ledger event with the running balance after it."""

    event: LedgerEvent
    balance_after: Decimal
    details: dict[str, Any]


class LabourLedger:
    """Service boundary for labour balances."""

    def __init__(self, session: Session, clock: Callable[[], date] = date.today):
        self.session = session
        self.clock = clock
        self.store = LedgerStore(session)
        self.coordinator = MutationCoordinator(session, self.store)
        self.labours = LabourService(session, self.store)

    # ------------------------------------------------------------------
    # Ledger events
    # ------------------------------------------------------------------

    def apply_entry(
        self,
        labour_id: UUID,
        entry_date: date | None = None,
        amount: Any = None,
        attendance_status: str | AttendanceStatus = AttendanceStatus.PRESENT,
        work_type: str | None = None,
        category: str | None = None,
        subcategory: str | None = None,
        notes: str | None = None,
    ) -> MutationResult:
        """Record a wage entry for a labour."""
        entry_date = entry_date if entry_date is not None else self.clock()

        def mutate() -> MutationResult:
            draft = EntryDraft(
                labour_id=parse_uuid(labour_id, "labour_id"),
                entry_date=entry_date,
                amount=amount,
                attendance_status=attendance_status,
                work_type=work_type,
                category=category,
                subcategory=subcategory,
                notes=notes,
            )
            record = self.coordinator.insert_entry(draft)
            return self._applied(record.labour_id, snapshot(record))

        return self._run("apply_entry", mutate, labour_id)

    def apply_payment(
        self,
        labour_id: UUID,
        payment_date: date | None = None,
        amount: Any = None,
        mode: str | None = None,
        narration: str | None = None,
    ) -> MutationResult:
        """Record a payment made to a labour."""
        payment_date = payment_date if payment_date is not None else self.clock()

        def mutate() -> MutationResult:
            draft = PaymentDraft(
                labour_id=parse_uuid(labour_id, "labour_id"),
                payment_date=payment_date,
                amount=amount,
                mode=mode,
                narration=narration,
            )
            record = self.coordinator.insert_payment(draft)
            return self._applied(record.labour_id, snapshot(record))

        return self._run("apply_payment", mutate, labour_id)

    def edit_event(self, event_id: UUID, **fields: Any) -> MutationResult:
        """Change fields of a wage entry or payment.

        Accepts the variant's own column names, or "date" for either.
        """

        def mutate() -> MutationResult:
            record = self.coordinator.edit_event(parse_uuid(event_id, "event_id"), fields)
            return self._applied(record.labour_id, snapshot(record))

        return self._run("edit_event", mutate)

    def delete_event(self, event_id: UUID) -> MutationResult:
        """Remove a wage entry or payment."""

        def mutate() -> MutationResult:
            removed = self.coordinator.delete_event(parse_uuid(event_id, "event_id"))
            return self._applied(removed.labour_id, removed)

        return self._run("delete_event", mutate)

    def get_balance(self, labour_id: UUID) -> Decimal | None:
        """Current mirror balance, or None for an unknown labour."""
        labour = self.store.get_labour(labour_id)
        if labour is None:
            return None
        return to_money(labour.balance)

    def get_event(self, event_id: UUID) -> WorkEntry | Payment | None:
        return self.store.find_event(event_id)

    def statement(self, labour_id: UUID) -> list[StatementLine] | None:
        """Ordered ledger of a labour with running balances, or None if unknown."""
        labour = self.store.get_labour(labour_id)
        if labour is None:
            return None

        events = self.store.events_for_labour(labour_id)
        lines: list[StatementLine] = []
        for event, balance_after in running_balances(labour.opening_balance, events):
            record = self.store.find_event(event.event_id)
            details = _details(record) if record is not None else {}
            lines.append(StatementLine(event=event, balance_after=balance_after, details=details))
        return lines

    # ------------------------------------------------------------------
    # Labours
    # ------------------------------------------------------------------

    def create_labour(
        self,
        full_name: str,
        opening_balance: Any = None,
        phone: str | None = None,
        address: str | None = None,
        emergency_contact: str | None = None,
    ) -> MutationResult:
        """Create a labour whose mirror starts at the opening balance."""

        def mutate() -> MutationResult:
            labour = self.labours.create_labour(
                full_name,
                opening_balance=opening_balance,
                phone=phone,
                address=address,
                emergency_contact=emergency_contact,
            )
            return MutationResult(
                status=MutationStatus.APPLIED,
                labour_id=labour.labour_id,
                balance=to_money(labour.balance),
            )

        return self._run("create_labour", mutate)

    def set_opening_balance(self, labour_id: UUID, opening_balance: Any) -> MutationResult:
        """Change the opening balance and rebalance the whole ledger."""

        def mutate() -> MutationResult:
            labour = self.coordinator.rebase(parse_uuid(labour_id, "labour_id"), opening_balance)
            return self._applied(labour.labour_id, None)

        return self._run("set_opening_balance", mutate, labour_id)

    def deactivate_labour(self, labour_id: UUID) -> MutationResult:
        """Deactivate a labour and purge its ledger events."""

        def mutate() -> MutationResult:
            target = parse_uuid(labour_id, "labour_id")
            self.labours.deactivate_labour(target)
            return self._applied(target, None)

        return self._run("deactivate_labour", mutate, labour_id)

    def get_labour(self, labour_id: UUID) -> Labour | None:
        return self.store.get_labour(labour_id)

    def list_labours(self, *, active_only: bool = True) -> list[Labour]:
        return self.store.list_labours(active_only=active_only)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def recalculate(
        self, labour_ids: list[UUID] | None = None, *, dry_run: bool = False
    ) -> RecalculationReport:
        """Rebuild ledgers from their opening balances (repair tool)."""
        return RecalculationJob(self.session).run(labour_ids, dry_run=dry_run)

    def verify(self, labour_ids: list[UUID] | None = None) -> ConsistencyReport | None:
        """Check stored balances against a replay; None if a labour is unknown."""
        try:
            return verify_ledgers(self.session, labour_ids)
        except NotFoundError:
            return None
        finally:
            self.session.rollback()

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _applied(self, labour_id: UUID, event: LedgerEvent | None) -> MutationResult:
        return MutationResult(
            status=MutationStatus.APPLIED,
            labour_id=labour_id,
            event=event,
            balance=self.get_balance(labour_id),
        )

    def _run(
        self,
        operation: str,
        mutate: Callable[[], MutationResult],
        labour_id: UUID | None = None,
    ) -> MutationResult:
        """Run a mutation in one transaction and map failures to statuses."""
        try:
            result = mutate()
            self.session.commit()
            return result
        except ValidationError as exc:
            self.session.rollback()
            return self._failed(MutationStatus.VALIDATION_ERROR, exc, labour_id, exc.errors)
        except DuplicateEntryError as exc:
            self.session.rollback()
            return self._failed(MutationStatus.DUPLICATE_ENTRY, exc, labour_id)
        except NotFoundError as exc:
            self.session.rollback()
            return self._failed(MutationStatus.NOT_FOUND, exc, labour_id)
        except (PersistenceError, SQLAlchemyError) as exc:
            self.session.rollback()
            logger.exception("%s failed while persisting; rolled back", operation)
            return self._failed(MutationStatus.PERSISTENCE_FAILURE, exc, labour_id)

    def _failed(
        self,
        status: MutationStatus,
        exc: Exception,
        labour_id: UUID | None,
        errors: list[str] | None = None,
    ) -> MutationResult:
        logger.info("Ledger mutation rejected (%s): %s", status.value, exc)
        return MutationResult(
            status=status,
            labour_id=labour_id,
            error=str(exc),
            errors=list(errors or [str(exc)]),
        )


def _details(record: WorkEntry | Payment) -> dict[str, Any]:
    if isinstance(record, WorkEntry):
        return {
            "attendance_status": record.attendance_status,
            "work_type": record.work_type,
            "category": record.category,
            "subcategory": record.subcategory,
            "notes": record.notes,
        }
    return {"mode": record.mode, "narration": record.narration}
