"""Field validation for ledger events.

Validation runs before any ledger read. Every problem is collected so the
caller can show all of them at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from labour_ledger.ledger.engine import ZERO, to_money
from labour_ledger.ledger.errors import ValidationError
from labour_ledger.models import AttendanceStatus

ATTENDANCE_VALUES = {s.value for s in AttendanceStatus}

# Money columns are Numeric(14, 2).
MAX_MONEY = Decimal("1000000000000")

# Columns an edit may change, per variant.
WORK_ENTRY_FIELDS = (
    "entry_date",
    "amount",
    "attendance_status",
    "work_type",
    "category",
    "subcategory",
    "notes",
)
PAYMENT_FIELDS = ("payment_date", "amount", "mode", "narration")


@dataclass
class EntryDraft:
    """Wage entry fields as submitted by a caller."""

    labour_id: UUID
    entry_date: Any
    amount: Any = None
    attendance_status: Any = AttendanceStatus.PRESENT.value
    work_type: str | None = None
    category: str | None = None
    subcategory: str | None = None
    notes: str | None = None


@dataclass
class PaymentDraft:
    """Payment fields as submitted by a caller."""

    labour_id: UUID
    payment_date: Any
    amount: Any = None
    mode: str | None = None
    narration: str | None = None


def parse_date(value: Any, field_name: str, errors: list[str]) -> date | None:
    if value is None or value == "":
        errors.append(f"{field_name} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    errors.append(f"{field_name} must be an ISO date")
    return None


def parse_amount(
    value: Any, field_name: str, errors: list[str], *, required: bool = True
) -> Decimal | None:
    if value is None or value == "":
        if required:
            errors.append(f"{field_name} is required")
        return None
    try:
        amount = parse_money(value, field_name)
    except ValidationError as exc:
        errors.extend(exc.errors)
        return None
    if amount < 0:
        errors.append(f"{field_name} must not be negative")
        return None
    return amount


def parse_money(value: Any, field_name: str) -> Decimal:
    """Parse a finite cents value that fits a Numeric(14, 2) column.

    Raises:
        ValidationError: not a number, or too large to store
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = Decimal(str(value))
        if not number.is_finite():
            raise ValidationError(f"{field_name} must be a number")
        money = to_money(number)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if abs(money) >= MAX_MONEY:
        raise ValidationError(f"{field_name} must be less than {MAX_MONEY:,.0f} in magnitude")
    return money


def parse_uuid(value: Any, field_name: str) -> UUID:
    """Accept a UUID or its string form.

    Raises:
        ValidationError: the value is not a UUID
    """
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    raise ValidationError(f"{field_name} must be a UUID")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: Any) -> str | None:
    if _blank(value):
        return None
    return str(value).strip()


def validate_entry(draft: EntryDraft) -> dict[str, Any]:
    """Validate a wage entry and return its normalized column values.

    Absent entries need no work details and always carry a zero amount.

    Raises:
        ValidationError: one or more fields are missing or malformed
    """
    errors: list[str] = []
    entry_date = parse_date(draft.entry_date, "entry_date", errors)

    status = draft.attendance_status
    if isinstance(status, AttendanceStatus):
        status = status.value
    if status not in ATTENDANCE_VALUES:
        errors.append(
            f"attendance_status must be one of {', '.join(sorted(ATTENDANCE_VALUES))}"
        )

    absent = status == AttendanceStatus.ABSENT.value
    if absent:
        amount: Decimal | None = ZERO
    else:
        amount = parse_amount(draft.amount, "amount", errors)
        for name in ("work_type", "category", "subcategory"):
            if _blank(getattr(draft, name)):
                errors.append(f"{name} is required")

    if errors:
        raise ValidationError(errors)

    return {
        "entry_date": entry_date,
        "amount": amount,
        "attendance_status": status,
        "work_type": _clean(draft.work_type),
        "category": _clean(draft.category),
        "subcategory": _clean(draft.subcategory),
        "notes": _clean(draft.notes),
    }


def validate_payment(draft: PaymentDraft) -> dict[str, Any]:
    """Validate a payment and return its normalized column values."""
    errors: list[str] = []
    payment_date = parse_date(draft.payment_date, "payment_date", errors)
    amount = parse_amount(draft.amount, "amount", errors)
    if errors:
        raise ValidationError(errors)

    return {
        "payment_date": payment_date,
        "amount": amount,
        "mode": _clean(draft.mode),
        "narration": _clean(draft.narration),
    }


def normalize_edit_fields(fields: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    """Map the generic "date" key onto the variant's date column.

    Raises:
        ValidationError: an unknown or immutable field was given
    """
    date_field = allowed[0]
    normalized: dict[str, Any] = {}
    unknown: list[str] = []
    for name, value in fields.items():
        key = date_field if name == "date" else name
        if key not in allowed:
            unknown.append(name)
            continue
        normalized[key] = value
    if unknown:
        raise ValidationError([f"{name} cannot be edited" for name in sorted(unknown)])
    if not normalized:
        raise ValidationError("no fields to update")
    return normalized


def validate_balance(value: Any, field_name: str) -> Decimal:
    """Validate an opening balance. Unlike event amounts it may be negative."""
    if value is None or value == "":
        return ZERO
    return parse_money(value, field_name)
