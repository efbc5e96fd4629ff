"""Batch recalculation job - rebuild whole ledgers from the opening balance.

A repair and migration tool, never called by the normal mutation flow.
Each labour is rebuilt in its own transaction:

1. Merge wage entries and payments in canonical order
2. Seed the running balance with the labour's opening balance
3. Rewrite every work entry's previous/new balance
4. Set the mirror to the final running balance

Seeding from the opening balance (not the current mirror) makes repeated
runs converge: a second run over a repaired ledger changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labour_ledger.ledger.engine import reconcile, to_money
from labour_ledger.ledger.errors import LedgerError
from labour_ledger.ledger.store import LedgerStore
from labour_ledger.models import Labour

logger = logging.getLogger(__name__)


@dataclass
class LabourRecalculation:
    """Outcome of rebuilding one labour's ledger."""

    labour_id: UUID
    event_count: int = 0
    entries_corrected: int = 0
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None
    error: str | None = None

    @property
    def mirror_changed(self) -> bool:
        return self.previous_balance != self.new_balance


@dataclass
class RecalculationReport:
    """Summary of a batch recalculation run."""

    dry_run: bool = False
    labours: list[LabourRecalculation] = field(default_factory=list)

    @property
    def labours_processed(self) -> int:
        return len(self.labours)

    @property
    def entries_corrected(self) -> int:
        return sum(r.entries_corrected for r in self.labours)

    @property
    def failures(self) -> list[LabourRecalculation]:
        return [r for r in self.labours if r.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failures


class RecalculationJob:
    """Rebuilds labour ledgers from scratch."""

    def __init__(self, session: Session):
        self.session = session
        self.store = LedgerStore(session)

    def run(
        self, labour_ids: list[UUID] | None = None, *, dry_run: bool = False
    ) -> RecalculationReport:
        """Recalculate the given labours, or every labour when none are given.

        A failure on one labour is recorded and rolled back; the run moves on
        to the next labour.
        """
        report = RecalculationReport(dry_run=dry_run)
        if labour_ids is None:
            labour_ids = list(
                self.session.scalars(select(Labour.labour_id).order_by(Labour.full_name)).all()
            )

        for labour_id in labour_ids:
            outcome = LabourRecalculation(labour_id=labour_id)
            try:
                self._recalculate(labour_id, outcome, dry_run=dry_run)
                if dry_run:
                    self.session.rollback()
                else:
                    self.session.commit()
            except (LedgerError, SQLAlchemyError) as exc:
                self.session.rollback()
                outcome.error = str(exc)
                logger.exception("Recalculation failed for labour %s", labour_id)
            report.labours.append(outcome)

        logger.info(
            "Recalculated %d labour(s), corrected %d entries, %d failure(s)%s",
            report.labours_processed,
            report.entries_corrected,
            len(report.failures),
            " (dry run)" if dry_run else "",
        )
        return report

    def _recalculate(
        self, labour_id: UUID, outcome: LabourRecalculation, *, dry_run: bool
    ) -> None:
        labour = self.store.lock_labour(labour_id)
        events = self.store.events_for_labour(labour_id)
        result = reconcile(labour.opening_balance, events)

        outcome.event_count = len(events)
        outcome.previous_balance = to_money(labour.balance)
        outcome.new_balance = result.final_balance
        outcome.entries_corrected = len(result.changed_entries(events))

        if dry_run:
            return

        self.store.apply_balances(result, events)
        self.store.set_balance(labour_id, result.final_balance)
