"""Mutation coordinator - cascade recompute for inserts, edits and deletes.

Every mutation follows the same pipeline:

    Validate → Seed → Recompute → Persist → MirrorUpdate → Done

1. Validate: check fields (and work entry date uniqueness)
2. Seed: balance immediately before the first affected date
3. Recompute: run the reconciliation engine over the affected window
4. Persist: write the event change plus every rebalanced later entry
5. MirrorUpdate: set Labour.balance to the window's final balance

Events dated before the window are never rewritten. The coordinator does
not commit; the caller wraps Persist and MirrorUpdate in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from labour_ledger.ledger.engine import (
    LedgerEvent,
    Reconciliation,
    reconcile,
    to_money,
)
from labour_ledger.ledger.errors import DuplicateEntryError, LedgerError, ValidationError
from labour_ledger.ledger.store import EventRecord, LedgerStore, snapshot
from labour_ledger.ledger.validation import (
    PAYMENT_FIELDS,
    WORK_ENTRY_FIELDS,
    EntryDraft,
    PaymentDraft,
    normalize_edit_fields,
    validate_balance,
    validate_entry,
    validate_payment,
)
from labour_ledger.models import Labour, Payment, WorkEntry
from labour_ledger.models.base import utcnow
from labour_ledger.services.state_machine import MutationState, MutationStateMachine

logger = logging.getLogger(__name__)


class MutationCoordinator:
    """Orchestrates ledger mutations and their cascade recompute."""

    def __init__(self, session: Session, store: LedgerStore | None = None):
        self.session = session
        self.store = store or LedgerStore(session)

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def insert_entry(self, draft: EntryDraft) -> WorkEntry:
        """Insert a wage entry and rebalance everything dated on or after it.

        Raises:
            ValidationError: invalid fields or inactive labour
            DuplicateEntryError: labour already has an entry on that date
            NotFoundError: unknown labour
        """
        machine = MutationStateMachine("insert_entry")
        try:
            values = validate_entry(draft)
            labour = self._lock_active_labour(draft.labour_id)
            if self.store.work_entry_on(labour.labour_id, values["entry_date"]) is not None:
                raise DuplicateEntryError(labour.labour_id, values["entry_date"])

            record = WorkEntry(
                work_entry_id=uuid4(),
                labour_id=labour.labour_id,
                created_at=utcnow(),
                previous_balance=Decimal("0.00"),
                new_balance=Decimal("0.00"),
                **values,
            )
            self._insert(machine, labour, record)
        except LedgerError as exc:
            machine.fail(str(exc))
            raise

        logger.info(
            "Inserted work entry %s for labour %s on %s (amount=%s)",
            record.work_entry_id,
            labour.labour_id,
            record.entry_date,
            record.amount,
        )
        return record

    def insert_payment(self, draft: PaymentDraft) -> Payment:
        """Insert a payment and rebalance everything dated on or after it."""
        machine = MutationStateMachine("insert_payment")
        try:
            values = validate_payment(draft)
            labour = self._lock_active_labour(draft.labour_id)
            record = Payment(
                payment_id=uuid4(),
                labour_id=labour.labour_id,
                created_at=utcnow(),
                **values,
            )
            self._insert(machine, labour, record)
        except LedgerError as exc:
            machine.fail(str(exc))
            raise

        logger.info(
            "Inserted payment %s for labour %s on %s (amount=%s)",
            record.payment_id,
            labour.labour_id,
            record.payment_date,
            record.amount,
        )
        return record

    def _insert(self, machine: MutationStateMachine, labour: Labour, record: EventRecord) -> None:
        new_event = snapshot(record)
        original = self.store.events_for_labour(labour.labour_id, new_event.event_date)

        def persist(result: Reconciliation) -> None:
            if isinstance(record, WorkEntry):
                computed = _find(result, new_event.event_id)
                record.previous_balance = computed.previous_balance
                record.new_balance = computed.new_balance
            self.store.insert(record)

        self._cascade(
            machine,
            labour,
            window=[*original, new_event],
            original=original,
            seed=self.store.balance_before(labour, new_event.event_date),
            persist=persist,
        )

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def edit_event(self, event_id: UUID, fields: dict[str, Any]) -> EventRecord:
        """Apply new field values to an event and rebalance.

        When the date moves, the window starts at min(old date, new date).

        Raises:
            NotFoundError: unknown event
            ValidationError: invalid or non-editable fields
            DuplicateEntryError: moving a wage entry onto an occupied date
        """
        machine = MutationStateMachine("edit_event")
        try:
            record = self.store.require_event(event_id)
            labour = self.store.lock_labour(record.labour_id)
            current = snapshot(record)
            values = self._validate_edit(record, fields)

            new_date: date = values.get(
                "entry_date" if current.is_work_entry else "payment_date"
            )
            if current.is_work_entry and new_date != current.event_date:
                if self.store.work_entry_on(labour.labour_id, new_date, exclude_id=event_id):
                    raise DuplicateEntryError(labour.labour_id, new_date)

            window_date = min(current.event_date, new_date)
            original = self.store.events_for_labour(labour.labour_id, window_date)
            edited = replace(current, event_date=new_date, amount=values["amount"])
            window = [edited if e.event_id == event_id else e for e in original]

            def persist(result: Reconciliation) -> None:
                self.store.update(event_id, values)

            self._cascade(
                machine,
                labour,
                window=window,
                original=original,
                seed=self.store.balance_before(labour, window_date),
                persist=persist,
            )
        except LedgerError as exc:
            machine.fail(str(exc))
            raise

        logger.info(
            "Edited %s %s for labour %s (fields=%s)",
            current.kind.value,
            event_id,
            labour.labour_id,
            ", ".join(sorted(fields)),
        )
        return record

    def _validate_edit(self, record: EventRecord, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge new fields over the stored ones and validate the result."""
        if isinstance(record, WorkEntry):
            changes = normalize_edit_fields(fields, WORK_ENTRY_FIELDS)
            merged = {name: getattr(record, name) for name in WORK_ENTRY_FIELDS}
            merged.update(changes)
            return validate_entry(EntryDraft(labour_id=record.labour_id, **merged))

        changes = normalize_edit_fields(fields, PAYMENT_FIELDS)
        merged = {name: getattr(record, name) for name in PAYMENT_FIELDS}
        merged.update(changes)
        return validate_payment(PaymentDraft(labour_id=record.labour_id, **merged))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_event(self, event_id: UUID) -> LedgerEvent:
        """Delete an event and rebalance everything dated on or after it.

        A deleted wage entry seeds the cascade with its own previous balance.

        Raises:
            NotFoundError: unknown event
        """
        machine = MutationStateMachine("delete_event")
        try:
            record = self.store.require_event(event_id)
            labour = self.store.lock_labour(record.labour_id)
            removed = snapshot(record)
            original = self.store.events_for_labour(labour.labour_id, removed.event_date)
            window = [e for e in original if e.event_id != event_id]

            if removed.is_work_entry:
                seed = removed.previous_balance
            else:
                seed = self.store.balance_before(labour, removed.event_date)

            def persist(result: Reconciliation) -> None:
                self.store.delete(event_id)

            self._cascade(
                machine,
                labour,
                window=window,
                original=original,
                seed=seed,
                persist=persist,
            )
        except LedgerError as exc:
            machine.fail(str(exc))
            raise

        logger.info(
            "Deleted %s %s for labour %s on %s",
            removed.kind.value,
            event_id,
            labour.labour_id,
            removed.event_date,
        )
        return removed

    # ------------------------------------------------------------------
    # Rebase
    # ------------------------------------------------------------------

    def rebase(self, labour_id: UUID, opening_balance: Any) -> Labour:
        """Change a labour's opening balance and rebalance the whole ledger."""
        machine = MutationStateMachine("rebase")
        try:
            value = validate_balance(opening_balance, "opening_balance")
            labour = self.store.lock_labour(labour_id)
            original = self.store.events_for_labour(labour.labour_id)

            def persist(result: Reconciliation) -> None:
                labour.opening_balance = value

            self._cascade(
                machine,
                labour,
                window=original,
                original=original,
                seed=value,
                persist=persist,
            )
        except LedgerError as exc:
            machine.fail(str(exc))
            raise

        logger.info("Rebased labour %s on opening balance %s", labour_id, value)
        return labour

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    def _lock_active_labour(self, labour_id: UUID) -> Labour:
        labour = self.store.lock_labour(labour_id)
        if not labour.is_active:
            raise ValidationError(f"Labour {labour_id} is inactive")
        return labour

    def _cascade(
        self,
        machine: MutationStateMachine,
        labour: Labour,
        *,
        window: list[LedgerEvent],
        original: list[LedgerEvent],
        seed: Decimal | None,
        persist: Callable[[Reconciliation], None],
    ) -> Reconciliation:
        machine.advance(MutationState.SEED)
        seed = to_money(seed if seed is not None else labour.opening_balance)

        machine.advance(MutationState.RECOMPUTE)
        result = reconcile(seed, window)

        machine.advance(MutationState.PERSIST)
        persist(result)
        rewritten = self.store.apply_balances(result, original)

        machine.advance(MutationState.MIRROR_UPDATE)
        self.store.set_balance(labour.labour_id, result.final_balance)

        machine.advance(MutationState.DONE)
        logger.debug(
            "Cascade for labour %s: seed=%s events=%d rewritten=%d balance=%s",
            labour.labour_id,
            seed,
            len(result.events),
            rewritten,
            result.final_balance,
        )
        return result


def _find(result: Reconciliation, event_id: UUID) -> LedgerEvent:
    for event in result.events:
        if event.event_id == event_id:
            return event
    raise KeyError(event_id)
