"""Ledger store - SQLAlchemy persistence for labours and ledger events."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from labour_ledger.database import acquire_labour_lock
from labour_ledger.ledger.engine import EventKind, LedgerEvent, Reconciliation, order_events, to_money
from labour_ledger.ledger.errors import DuplicateEntryError, NotFoundError, PersistenceError
from labour_ledger.models import Labour, Payment, WorkEntry

logger = logging.getLogger(__name__)

EventRecord = Union[WorkEntry, Payment]


def snapshot(record: EventRecord) -> LedgerEvent:
    """Build an immutable engine snapshot from an ORM event."""
    if isinstance(record, WorkEntry):
        return LedgerEvent(
            event_id=record.work_entry_id,
            labour_id=record.labour_id,
            kind=EventKind.WORK_ENTRY,
            event_date=record.entry_date,
            amount=to_money(record.amount),
            previous_balance=to_money(record.previous_balance),
            new_balance=to_money(record.new_balance),
            created_at=record.created_at,
        )
    return LedgerEvent(
        event_id=record.payment_id,
        labour_id=record.labour_id,
        kind=EventKind.PAYMENT,
        event_date=record.payment_date,
        amount=to_money(record.amount),
        created_at=record.created_at,
    )


class LedgerStore:
    """Persistence for labour records and their ledger events.

    Notes:
    - The store flushes after every write so later range queries see it.
    - It never commits; the caller owns the transaction.
    - Database failures while writing surface as PersistenceError.
    """

    def __init__(self, session: Session):
        self.session = session

    def _flush(self) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Ledger write failed: {type(exc).__name__}") from exc

    # ------------------------------------------------------------------
    # Labours
    # ------------------------------------------------------------------

    def get_labour(self, labour_id: UUID, *, for_update: bool = False) -> Labour | None:
        """Get a labour by id, optionally taking a row lock."""
        stmt = select(Labour).where(Labour.labour_id == labour_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).one_or_none()

    def require_labour(self, labour_id: UUID, *, for_update: bool = False) -> Labour:
        labour = self.get_labour(labour_id, for_update=for_update)
        if labour is None:
            raise NotFoundError("Labour", labour_id)
        return labour

    def lock_labour(self, labour_id: UUID) -> Labour:
        """Serialize writers for one labour for the rest of the transaction.

        PostgreSQL takes an advisory lock; other dialects fall back to a
        row lock on the labour record (a no-op on SQLite).
        """
        if self.session.get_bind().dialect.name == "postgresql":
            acquire_labour_lock(self.session, str(labour_id))
        return self.require_labour(labour_id, for_update=True)

    def set_balance(self, labour_id: UUID, value: Decimal) -> None:
        """Write the labour's mirror balance."""
        labour = self.require_labour(labour_id)
        labour.balance = to_money(value)
        self._flush()

    def list_labours(self, *, active_only: bool = True) -> list[Labour]:
        stmt = select(Labour).order_by(Labour.full_name, Labour.labour_id)
        if active_only:
            stmt = stmt.where(Labour.is_active.is_(True))
        return list(self.session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def find_event(self, event_id: UUID) -> EventRecord | None:
        """Locate an event of either variant by id."""
        entry = self.session.get(WorkEntry, event_id)
        if entry is not None:
            return entry
        return self.session.get(Payment, event_id)

    def require_event(self, event_id: UUID) -> EventRecord:
        record = self.find_event(event_id)
        if record is None:
            raise NotFoundError("Ledger event", event_id)
        return record

    def events_for_labour(
        self, labour_id: UUID, from_date: date | None = None
    ) -> list[LedgerEvent]:
        """All events of a labour on or after from_date, in canonical order."""
        entries_stmt = select(WorkEntry).where(WorkEntry.labour_id == labour_id)
        payments_stmt = select(Payment).where(Payment.labour_id == labour_id)
        if from_date is not None:
            entries_stmt = entries_stmt.where(WorkEntry.entry_date >= from_date)
            payments_stmt = payments_stmt.where(Payment.payment_date >= from_date)

        records: list[EventRecord] = [
            *self.session.scalars(entries_stmt).all(),
            *self.session.scalars(payments_stmt).all(),
        ]
        return order_events(snapshot(r) for r in records)

    def work_entry_on(
        self, labour_id: UUID, on_date: date, *, exclude_id: UUID | None = None
    ) -> WorkEntry | None:
        """The work entry of a labour on a date, if any."""
        stmt = select(WorkEntry).where(
            WorkEntry.labour_id == labour_id,
            WorkEntry.entry_date == on_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(WorkEntry.work_entry_id != exclude_id)
        return self.session.scalars(stmt).first()

    def balance_before(self, labour: Labour, on_date: date) -> Decimal:
        """Running balance immediately before the first event on on_date.

        Starts from the latest earlier work entry's stored new balance (or
        the opening balance when there is none) and subtracts the payments
        that fall between it and on_date.
        """
        last_entry = self.session.scalars(
            select(WorkEntry)
            .where(
                WorkEntry.labour_id == labour.labour_id,
                WorkEntry.entry_date < on_date,
            )
            .order_by(WorkEntry.entry_date.desc())
            .limit(1)
        ).first()

        payments_stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.labour_id == labour.labour_id,
            Payment.payment_date < on_date,
        )
        if last_entry is not None:
            base = Decimal(str(last_entry.new_balance))
            # Payments on the entry's own date come after it.
            payments_stmt = payments_stmt.where(Payment.payment_date >= last_entry.entry_date)
        else:
            base = Decimal(str(labour.opening_balance))

        paid = self.session.execute(payments_stmt).scalar()
        return to_money(base - Decimal(str(paid or 0)))

    def insert(self, record: EventRecord) -> EventRecord:
        """Insert an event.

        Raises:
            DuplicateEntryError: a work entry already exists for (labour, date)
        """
        if isinstance(record, WorkEntry):
            if self.work_entry_on(record.labour_id, record.entry_date) is not None:
                raise DuplicateEntryError(record.labour_id, record.entry_date)

        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as exc:
            if isinstance(record, WorkEntry):
                raise DuplicateEntryError(record.labour_id, record.entry_date) from exc
            raise PersistenceError(f"Ledger write failed: {type(exc).__name__}") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Ledger write failed: {type(exc).__name__}") from exc
        return record

    def update(self, event_id: UUID, fields: dict[str, Any]) -> EventRecord:
        """Apply column values to an existing event."""
        record = self.require_event(event_id)
        for name, value in fields.items():
            setattr(record, name, value)
        self._flush()
        return record

    def delete(self, event_id: UUID) -> LedgerEvent:
        """Delete an event, returning its last stored snapshot."""
        record = self.require_event(event_id)
        removed = snapshot(record)
        self.session.delete(record)
        self._flush()
        return removed

    def delete_all_events(self, labour_id: UUID) -> int:
        """Delete every ledger event of a labour. Returns the count removed."""
        records: list[EventRecord] = [
            *self.session.scalars(select(WorkEntry).where(WorkEntry.labour_id == labour_id)).all(),
            *self.session.scalars(select(Payment).where(Payment.labour_id == labour_id)).all(),
        ]
        for record in records:
            self.session.delete(record)
        self._flush()
        return len(records)

    def apply_balances(
        self, reconciliation: Reconciliation, original: list[LedgerEvent]
    ) -> int:
        """Write recomputed balances for work entries that changed.

        Returns count of updated rows.
        """
        changed = reconciliation.changed_entries(original)
        for event in changed:
            entry = self.session.get(WorkEntry, event.event_id)
            if entry is None:
                raise NotFoundError("Work entry", event.event_id)
            entry.previous_balance = event.previous_balance
            entry.new_balance = event.new_balance
        if changed:
            self._flush()
            logger.debug("Rewrote balances on %d work entries", len(changed))
        return len(changed)
