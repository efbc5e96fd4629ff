"""Read-only consistency check of stored balances."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from labour_ledger.ledger.engine import reconcile, to_money
from labour_ledger.ledger.store import LedgerStore


@dataclass(frozen=True)
class Discrepancy:
    """A stored value that disagrees with a replay from the opening balance."""

    labour_id: UUID
    field: str
    expected: Decimal
    actual: Decimal
    event_id: UUID | None = None
    event_date: date | None = None

    def describe(self) -> str:
        where = f" on {self.event_date.isoformat()} ({self.event_id})" if self.event_id else ""
        return f"labour {self.labour_id}{where}: {self.field} is {self.actual}, expected {self.expected}"


@dataclass
class ConsistencyReport:
    labours_checked: int = 0
    discrepancies: list[Discrepancy] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.discrepancies


def verify_ledgers(session: Session, labour_ids: list[UUID] | None = None) -> ConsistencyReport:
    """Replay each ledger and compare against stored balances and mirror."""
    store = LedgerStore(session)
    if labour_ids is None:
        labours = store.list_labours(active_only=False)
    else:
        labours = [store.require_labour(labour_id) for labour_id in labour_ids]

    report = ConsistencyReport()
    for labour in labours:
        report.labours_checked += 1
        stored = store.events_for_labour(labour.labour_id)
        result = reconcile(labour.opening_balance, stored)

        for expected, actual in zip(result.events, stored):
            if not expected.is_work_entry:
                continue
            for name in ("previous_balance", "new_balance"):
                if getattr(expected, name) != getattr(actual, name):
                    report.discrepancies.append(
                        Discrepancy(
                            labour_id=labour.labour_id,
                            field=name,
                            expected=getattr(expected, name),
                            actual=getattr(actual, name),
                            event_id=actual.event_id,
                            event_date=actual.event_date,
                        )
                    )

        mirror = to_money(labour.balance)
        if mirror != result.final_balance:
            report.discrepancies.append(
                Discrepancy(
                    labour_id=labour.labour_id,
                    field="balance",
                    expected=result.final_balance,
                    actual=mirror,
                )
            )
    return report
