"""Reconciliation engine - pure running-balance recomputation.

Given a seed balance and the events of one labour, the engine walks the
events in canonical order and recomputes each work entry's previous/new
balance:

    running := seed
    work entry:  previous := running; running += amount; new := running
    payment:     running -= amount

Canonical order is (date, work entries before payments, created_at, id).
The engine performs no I/O, so running it twice on the same input yields
identical output.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize a value to two decimal places."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventKind(str, Enum):
    """Ledger event variant."""

    WORK_ENTRY = "work_entry"
    PAYMENT = "payment"


# Same-date tie-break: work entries are applied before payments.
KIND_RANK = {
    EventKind.WORK_ENTRY: 0,
    EventKind.PAYMENT: 1,
}


@dataclass(frozen=True)
class LedgerEvent:
    """Immutable snapshot of a ledger event.

    previous_balance/new_balance are only meaningful for work entries and
    stay None for payments.
    """

    event_id: UUID
    labour_id: UUID
    kind: EventKind
    event_date: date
    amount: Decimal
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None
    created_at: datetime | None = None

    @property
    def is_work_entry(self) -> bool:
        return self.kind == EventKind.WORK_ENTRY

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this event on the running balance."""
        return self.amount if self.is_work_entry else -self.amount

    def sort_key(self) -> tuple[date, int, datetime, str]:
        return (
            self.event_date,
            KIND_RANK[self.kind],
            _as_utc(self.created_at),
            str(self.event_id),
        )


@dataclass(frozen=True)
class Reconciliation:
    """Result of reconciling an ordered window of events."""

    seed: Decimal
    events: tuple[LedgerEvent, ...]
    final_balance: Decimal

    @property
    def work_entries(self) -> list[LedgerEvent]:
        return [e for e in self.events if e.is_work_entry]

    def changed_entries(self, original: Iterable[LedgerEvent]) -> list[LedgerEvent]:
        """Work entries whose balances differ from the given stored snapshots.

        Entries absent from `original` are always reported as changed.
        """
        stored = {e.event_id: e for e in original}
        changed: list[LedgerEvent] = []
        for event in self.work_entries:
            before = stored.get(event.event_id)
            if (
                before is None
                or before.previous_balance != event.previous_balance
                or before.new_balance != event.new_balance
            ):
                changed.append(event)
        return changed


def order_events(events: Iterable[LedgerEvent]) -> list[LedgerEvent]:
    """Sort events into canonical ledger order."""
    return sorted(events, key=LedgerEvent.sort_key)


def reconcile(seed: Decimal, events: Iterable[LedgerEvent]) -> Reconciliation:
    """Recompute running balances for a window of events.

    Args:
        seed: Balance immediately before the first event of the window
        events: Events of a single labour, in any order

    Returns:
        Reconciliation with updated work entries and the final balance
    """
    running = to_money(seed)
    seed = running
    updated: list[LedgerEvent] = []

    for event in order_events(events):
        if event.is_work_entry:
            previous = running
            running = to_money(running + event.amount)
            updated.append(replace(event, previous_balance=previous, new_balance=running))
        else:
            running = to_money(running - event.amount)
            updated.append(event)

    return Reconciliation(seed=seed, events=tuple(updated), final_balance=running)


def running_balances(
    seed: Decimal, events: Iterable[LedgerEvent]
) -> list[tuple[LedgerEvent, Decimal]]:
    """Pair every event (payments included) with the balance after it."""
    result = reconcile(seed, events)
    rows: list[tuple[LedgerEvent, Decimal]] = []
    running = result.seed
    for event in result.events:
        running = to_money(running + event.signed_amount)
        rows.append((event, running))
    return rows
