"""Tests for ledger mutations through the LabourLedger facade.

Each test checks the stored previous/new balance on every wage entry and
the labour's mirror balance after a mutation commits.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from factories import entry_fields
from sqlalchemy.exc import OperationalError

from labour_ledger.facade import LabourLedger, MutationStatus
from labour_ledger.ledger.engine import EventKind
from labour_ledger.models import WorkEntry


def balances(ledger: LabourLedger, labour_id: UUID) -> list[tuple[date, Decimal, Decimal]]:
    """(date, previous, new) of every stored wage entry in ledger order."""
    return [
        (e.event_date, e.previous_balance, e.new_balance)
        for e in ledger.store.events_for_labour(labour_id)
        if e.kind == EventKind.WORK_ENTRY
    ]


def d(day: int) -> date:
    return date(2024, 1, day)


class TestInsert:
    """Test recording wage entries and payments."""

    def test_chained_entries(self, ledger: LabourLedger, labour_id: UUID):
        """Consecutive entries chain their balances."""
        first = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        second = ledger.apply_entry(labour_id, d(2), **entry_fields(amount="50"))

        assert first.status == MutationStatus.APPLIED
        assert first.event.previous_balance == Decimal("0.00")
        assert first.event.new_balance == Decimal("100.00")
        assert second.event.previous_balance == Decimal("100.00")
        assert second.event.new_balance == Decimal("150.00")
        assert second.balance == Decimal("150.00")
        assert ledger.get_balance(labour_id) == Decimal("150.00")

    def test_backdated_payment_rebalances_later_entries(self, ledger: LabourLedger, labour_id: UUID):
        """A payment inserted between entries lowers every later balance."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_entry(labour_id, d(3), **entry_fields(amount="50"))

        result = ledger.apply_payment(labour_id, d(2), "40", mode="cash")

        assert result.ok
        assert result.event.kind == EventKind.PAYMENT
        assert balances(ledger, labour_id) == [
            (d(1), Decimal("0.00"), Decimal("100.00")),
            (d(3), Decimal("60.00"), Decimal("110.00")),
        ]
        assert ledger.get_balance(labour_id) == Decimal("110.00")

    def test_backdated_entry(self, ledger: LabourLedger, labour_id: UUID):
        """An entry inserted before existing ones becomes the new head."""
        ledger.apply_entry(labour_id, d(5), **entry_fields(amount="100"))
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="30"))

        assert balances(ledger, labour_id) == [
            (d(1), Decimal("0.00"), Decimal("30.00")),
            (d(5), Decimal("30.00"), Decimal("130.00")),
        ]
        assert ledger.get_balance(labour_id) == Decimal("130.00")

    def test_same_day_payment_follows_entry(self, ledger: LabourLedger, labour_id: UUID):
        """A payment on an entry's date does not change that entry's balances."""
        ledger.apply_payment(labour_id, d(2), "30")
        ledger.apply_entry(labour_id, d(2), **entry_fields(amount="100"))

        assert balances(ledger, labour_id) == [(d(2), Decimal("0.00"), Decimal("100.00"))]
        assert ledger.get_balance(labour_id) == Decimal("70.00")

    def test_entry_after_same_day_payment_on_earlier_date(self, ledger: LabourLedger, labour_id: UUID):
        """The seed includes payments dated on the previous entry's own date."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour_id, d(1), "25")

        result = ledger.apply_entry(labour_id, d(4), **entry_fields(amount="10"))

        assert result.event.previous_balance == Decimal("75.00")
        assert result.event.new_balance == Decimal("85.00")

    def test_opening_balance_seeds_first_entry(self, ledger: LabourLedger):
        """The first entry starts from the opening balance."""
        labour = ledger.create_labour("Sunita Devi", opening_balance="500").labour_id
        result = ledger.apply_entry(labour, d(1), **entry_fields(amount="100"))

        assert result.event.previous_balance == Decimal("500.00")
        assert result.event.new_balance == Decimal("600.00")

    def test_absent_entry_carries_balance(self, ledger: LabourLedger, labour_id: UUID):
        """Absent days record zero and carry the balance forward."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        result = ledger.apply_entry(labour_id, d(2), amount="999", attendance_status="absent")

        assert result.event.amount == Decimal("0.00")
        assert result.event.previous_balance == result.event.new_balance == Decimal("100.00")

    def test_date_defaults_to_clock(self, ledger: LabourLedger, labour_id: UUID):
        """Missing dates come from the ledger clock."""
        entry = ledger.apply_entry(labour_id, **entry_fields())
        pay = ledger.apply_payment(labour_id, amount="10")

        assert entry.event.event_date == date(2024, 3, 1)
        assert pay.event.event_date == date(2024, 3, 1)

    def test_payment_may_overdraw(self, ledger: LabourLedger, labour_id: UUID):
        """Advances beyond earned wages give a negative balance."""
        result = ledger.apply_payment(labour_id, d(1), "250")
        assert result.balance == Decimal("-250.00")


class TestInsertRejections:
    """Test that rejected inserts write nothing."""

    def test_duplicate_entry(self, ledger: LabourLedger, labour_id: UUID):
        """A second wage entry on the same date is refused."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        result = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="70"))

        assert result.status == MutationStatus.DUPLICATE_ENTRY
        assert not result.ok
        assert ledger.get_balance(labour_id) == Decimal("100.00")
        assert len(balances(ledger, labour_id)) == 1

    def test_multiple_payments_same_day_allowed(self, ledger: LabourLedger, labour_id: UUID):
        assert ledger.apply_payment(labour_id, d(1), "10").ok
        assert ledger.apply_payment(labour_id, d(1), "15").ok
        assert ledger.get_balance(labour_id) == Decimal("-25.00")

    def test_validation_error(self, ledger: LabourLedger, labour_id: UUID):
        """Missing fields are reported together."""
        result = ledger.apply_entry(labour_id, d(1), amount=None, work_type="construction")

        assert result.status == MutationStatus.VALIDATION_ERROR
        assert result.errors == [
            "amount is required",
            "category is required",
            "subcategory is required",
        ]
        assert ledger.store.events_for_labour(labour_id) == []

    def test_negative_payment(self, ledger: LabourLedger, labour_id: UUID):
        result = ledger.apply_payment(labour_id, d(1), "-5")
        assert result.status == MutationStatus.VALIDATION_ERROR

    def test_unknown_labour(self, ledger: LabourLedger):
        result = ledger.apply_payment(uuid4(), d(1), "5")
        assert result.status == MutationStatus.NOT_FOUND

    def test_inactive_labour(self, ledger: LabourLedger, labour_id: UUID):
        """Deactivated labours accept no new events."""
        ledger.deactivate_labour(labour_id)
        result = ledger.apply_entry(labour_id, d(1), **entry_fields())
        assert result.status == MutationStatus.VALIDATION_ERROR

    def test_persistence_failure_rolls_back(
        self, ledger: LabourLedger, labour_id: UUID, monkeypatch: pytest.MonkeyPatch
    ):
        """A store failure mid-cascade leaves nothing behind."""
        ledger.apply_entry(labour_id, d(5), **entry_fields(amount="100"))

        def boom(*args, **kwargs):
            raise OperationalError("UPDATE work_entry", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ledger.store, "apply_balances", boom)
        result = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="30"))
        monkeypatch.undo()

        assert result.status == MutationStatus.PERSISTENCE_FAILURE
        assert balances(ledger, labour_id) == [(d(5), Decimal("0.00"), Decimal("100.00"))]
        assert ledger.get_balance(labour_id) == Decimal("100.00")

    def test_flush_failure_reported_without_sql(
        self, ledger: LabourLedger, labour_id: UUID, monkeypatch: pytest.MonkeyPatch
    ):
        """A failed write surfaces as a persistence failure with a short message."""

        def boom(*args, **kwargs):
            raise OperationalError("INSERT INTO payment", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ledger.session, "flush", boom)
        result = ledger.apply_payment(labour_id, d(1), "10")
        monkeypatch.undo()

        assert result.status == MutationStatus.PERSISTENCE_FAILURE
        assert result.errors == ["Ledger write failed: OperationalError"]
        assert ledger.store.events_for_labour(labour_id) == []
        assert ledger.get_balance(labour_id) == Decimal("0.00")

    @pytest.mark.parametrize("amount", ["1e400", "1e15", "1000000000000", "999999999999.999"])
    def test_oversized_amount(self, ledger: LabourLedger, labour_id: UUID, amount):
        """Amounts beyond the money columns are refused, not raised."""
        entry = ledger.apply_entry(labour_id, d(1), **entry_fields(amount=amount))
        pay = ledger.apply_payment(labour_id, d(1), amount)

        assert entry.status == MutationStatus.VALIDATION_ERROR
        assert pay.status == MutationStatus.VALIDATION_ERROR
        assert ledger.store.events_for_labour(labour_id) == []

    def test_huge_repeated_amounts(self, ledger: LabourLedger, labour_id: UUID):
        """Amounts that would overflow the running total never reach it."""
        first = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="9e25"))
        second = ledger.apply_entry(labour_id, d(2), **entry_fields(amount="9e25"))

        assert first.status == second.status == MutationStatus.VALIDATION_ERROR
        assert ledger.get_balance(labour_id) == Decimal("0.00")

    @pytest.mark.parametrize("bad_id", ["not-a-uuid", 42, None])
    def test_malformed_labour_id(self, ledger: LabourLedger, bad_id):
        """A labour id that is not a UUID is a validation error."""
        entry = ledger.apply_entry(bad_id, d(1), **entry_fields())
        pay = ledger.apply_payment(bad_id, d(1), "5")

        assert entry.status == pay.status == MutationStatus.VALIDATION_ERROR
        assert pay.errors == ["labour_id must be a UUID"]

    def test_labour_id_as_string(self, ledger: LabourLedger, labour_id: UUID):
        """The string form of a labour id is accepted."""
        result = ledger.apply_payment(str(labour_id), d(1), "5")
        assert result.ok
        assert result.event.labour_id == labour_id


class TestEdit:
    """Test editing existing events."""

    def test_edit_amount_cascades(self, ledger: LabourLedger, labour_id: UUID):
        """Changing an early amount moves every later balance."""
        first = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour_id, d(2), "40")
        ledger.apply_entry(labour_id, d(3), **entry_fields(amount="50"))

        result = ledger.edit_event(first.event.event_id, amount="80")

        assert result.ok
        assert balances(ledger, labour_id) == [
            (d(1), Decimal("0.00"), Decimal("80.00")),
            (d(3), Decimal("40.00"), Decimal("90.00")),
        ]
        assert result.balance == Decimal("90.00")

    def test_edit_payment(self, ledger: LabourLedger, labour_id: UUID):
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        pay = ledger.apply_payment(labour_id, d(2), "40")
        ledger.apply_entry(labour_id, d(3), **entry_fields(amount="50"))

        ledger.edit_event(pay.event.event_id, amount="10", narration="advance")

        assert balances(ledger, labour_id)[-1] == (d(3), Decimal("90.00"), Decimal("140.00"))
        assert ledger.get_event(pay.event.event_id).narration == "advance"

    def test_move_entry_earlier(self, ledger: LabourLedger, labour_id: UUID):
        """Moving a date rebalances from the earlier of the two dates."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour_id, d(2), "40")
        late = ledger.apply_entry(labour_id, d(3), **entry_fields(amount="50"))

        result = ledger.edit_event(late.event.event_id, date=d(2))

        assert result.event.event_date == d(2)
        assert balances(ledger, labour_id) == [
            (d(1), Decimal("0.00"), Decimal("100.00")),
            (d(2), Decimal("100.00"), Decimal("150.00")),
        ]
        assert ledger.get_balance(labour_id) == Decimal("110.00")

    def test_move_payment_later(self, ledger: LabourLedger, labour_id: UUID):
        pay = ledger.apply_payment(labour_id, d(1), "40")
        ledger.apply_entry(labour_id, d(2), **entry_fields(amount="100"))
        ledger.apply_entry(labour_id, d(4), **entry_fields(amount="100"))

        ledger.edit_event(pay.event.event_id, date=d(3))

        assert balances(ledger, labour_id) == [
            (d(2), Decimal("0.00"), Decimal("100.00")),
            (d(4), Decimal("60.00"), Decimal("160.00")),
        ]

    def test_move_onto_occupied_date(self, ledger: LabourLedger, labour_id: UUID):
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        other = ledger.apply_entry(labour_id, d(2), **entry_fields(amount="50"))

        result = ledger.edit_event(other.event.event_id, date=d(1))

        assert result.status == MutationStatus.DUPLICATE_ENTRY
        assert ledger.get_event(other.event.event_id).entry_date == d(2)

    def test_edit_to_absent_zeroes_amount(self, ledger: LabourLedger, labour_id: UUID):
        entry = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        result = ledger.edit_event(entry.event.event_id, attendance_status="absent")

        assert result.event.amount == Decimal("0.00")
        assert result.balance == Decimal("0.00")

    def test_edit_rejects_foreign_fields(self, ledger: LabourLedger, labour_id: UUID):
        pay = ledger.apply_payment(labour_id, d(1), "40")
        result = ledger.edit_event(pay.event.event_id, subcategory="tiling")
        assert result.status == MutationStatus.VALIDATION_ERROR

    def test_edit_invalid_value(self, ledger: LabourLedger, labour_id: UUID):
        entry = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        result = ledger.edit_event(entry.event.event_id, amount="-1")

        assert result.status == MutationStatus.VALIDATION_ERROR
        assert ledger.get_balance(labour_id) == Decimal("100.00")

    def test_edit_unknown_event(self, ledger: LabourLedger):
        result = ledger.edit_event(uuid4(), amount="1")
        assert result.status == MutationStatus.NOT_FOUND

    def test_malformed_event_id(self, ledger: LabourLedger):
        assert ledger.edit_event("nope", amount="1").status == MutationStatus.VALIDATION_ERROR
        assert ledger.delete_event("nope").status == MutationStatus.VALIDATION_ERROR


class TestDelete:
    """Test deleting events."""

    def test_delete_entry_restores_prior_state(self, ledger: LabourLedger, labour_id: UUID):
        """Inserting then deleting an entry returns every balance to before."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour_id, d(3), "20")
        ledger.apply_entry(labour_id, d(5), **entry_fields(amount="50"))
        before = balances(ledger, labour_id)

        inserted = ledger.apply_entry(labour_id, d(2), **entry_fields(amount="35"))
        result = ledger.delete_event(inserted.event.event_id)

        assert result.ok
        assert result.event.event_id == inserted.event.event_id
        assert balances(ledger, labour_id) == before
        assert ledger.get_balance(labour_id) == Decimal("130.00")

    def test_delete_payment(self, ledger: LabourLedger, labour_id: UUID):
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        pay = ledger.apply_payment(labour_id, d(2), "40")
        ledger.apply_entry(labour_id, d(3), **entry_fields(amount="50"))

        ledger.delete_event(pay.event.event_id)

        assert balances(ledger, labour_id)[-1] == (d(3), Decimal("100.00"), Decimal("150.00"))
        assert ledger.get_balance(labour_id) == Decimal("150.00")

    def test_delete_only_event(self, ledger: LabourLedger):
        """An empty ledger mirrors the opening balance."""
        labour = ledger.create_labour("Anil", opening_balance="20").labour_id
        entry = ledger.apply_entry(labour, d(1), **entry_fields(amount="100"))

        ledger.delete_event(entry.event.event_id)

        assert ledger.get_balance(labour) == Decimal("20.00")
        assert ledger.get_event(entry.event.event_id) is None

    def test_delete_unknown_event(self, ledger: LabourLedger):
        result = ledger.delete_event(uuid4())
        assert result.status == MutationStatus.NOT_FOUND


class TestLabours:
    """Test labour master data operations."""

    def test_create_validates(self, ledger: LabourLedger):
        result = ledger.create_labour("  ", opening_balance="abc")
        assert result.status == MutationStatus.VALIDATION_ERROR
        assert result.errors == ["full_name is required", "opening_balance must be a number"]

    def test_create_negative_opening(self, ledger: LabourLedger):
        result = ledger.create_labour("Geeta", opening_balance="-100")
        assert result.ok
        assert result.balance == Decimal("-100.00")

    @pytest.mark.parametrize(
        "name, error",
        [(123, "full_name must be text"), (["Geeta"], "full_name must be text"), (None, "full_name is required")],
    )
    def test_create_rejects_non_text_name(self, ledger: LabourLedger, name, error):
        result = ledger.create_labour(name)
        assert result.status == MutationStatus.VALIDATION_ERROR
        assert result.errors == [error]
        assert ledger.list_labours(active_only=False) == []

    @pytest.mark.parametrize("opening", ["1e400", "-1e15", "1000000000000"])
    def test_oversized_opening_balance(self, ledger: LabourLedger, labour_id: UUID, opening):
        """Opening balances beyond the money columns are refused on create and rebase."""
        created = ledger.create_labour("Geeta", opening_balance=opening)
        rebased = ledger.set_opening_balance(labour_id, opening)

        assert created.status == MutationStatus.VALIDATION_ERROR
        assert rebased.status == MutationStatus.VALIDATION_ERROR
        assert ledger.get_labour(labour_id).opening_balance == Decimal("0.00")

    def test_malformed_labour_id(self, ledger: LabourLedger):
        assert ledger.set_opening_balance("x", "10").status == MutationStatus.VALIDATION_ERROR
        assert ledger.deactivate_labour("x").status == MutationStatus.VALIDATION_ERROR

    def test_set_opening_balance_rebases(self, ledger: LabourLedger, labour_id: UUID):
        """A new opening balance shifts every stored balance."""
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour_id, d(2), "30")

        result = ledger.set_opening_balance(labour_id, "200")

        assert result.ok
        assert balances(ledger, labour_id) == [(d(1), Decimal("200.00"), Decimal("300.00"))]
        assert ledger.get_balance(labour_id) == Decimal("270.00")
        assert ledger.get_labour(labour_id).opening_balance == Decimal("200.00")

    def test_deactivate_purges_ledger(self, ledger: LabourLedger):
        labour = ledger.create_labour("Mohan", opening_balance="15").labour_id
        ledger.apply_entry(labour, d(1), **entry_fields(amount="100"))
        ledger.apply_payment(labour, d(2), "30")

        result = ledger.deactivate_labour(labour)

        assert result.ok
        record = ledger.get_labour(labour)
        assert record.is_active is False
        assert ledger.get_balance(labour) == Decimal("15.00")
        assert ledger.store.events_for_labour(labour) == []
        assert ledger.list_labours() == []
        assert [item.labour_id for item in ledger.list_labours(active_only=False)] == [labour]

    def test_unknown_labour_queries(self, ledger: LabourLedger):
        assert ledger.get_balance(uuid4()) is None
        assert ledger.statement(uuid4()) is None
        assert ledger.set_opening_balance(uuid4(), "1").status == MutationStatus.NOT_FOUND


class TestStatement:
    """Test the running statement."""

    def test_statement_lines(self, ledger: LabourLedger, labour_id: UUID):
        ledger.apply_entry(labour_id, d(1), **entry_fields(amount="100", notes="slab"))
        ledger.apply_payment(labour_id, d(1), "30", mode="upi")
        ledger.apply_entry(labour_id, d(2), **entry_fields(amount="20"))

        lines = ledger.statement(labour_id)

        assert [line.balance_after for line in lines] == [
            Decimal("100.00"),
            Decimal("70.00"),
            Decimal("90.00"),
        ]
        assert lines[0].details["notes"] == "slab"
        assert lines[1].details == {"mode": "upi", "narration": None}


class TestStoredRows:
    def test_rows_match_result(self, ledger: LabourLedger, labour_id: UUID, session):
        """Committed rows carry the balances reported in the result."""
        result = ledger.apply_entry(labour_id, d(1), **entry_fields(amount="12.345"))
        session.expire_all()
        row = session.get(WorkEntry, result.event.event_id)

        assert Decimal(str(row.amount)) == Decimal("12.35")
        assert Decimal(str(row.new_balance)) == Decimal("12.35")
