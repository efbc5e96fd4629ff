"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from labour_ledger.ledger.engine import EventKind


# ============================================================================
# Labour schemas
# ============================================================================


class LabourCreate(BaseModel):
    """Schema for creating a labour."""

    full_name: str = Field(..., min_length=1)
    opening_balance: Decimal = Decimal("0.00")
    phone: str | None = None
    address: str | None = None
    emergency_contact: str | None = None


class OpeningBalanceUpdate(BaseModel):
    """Schema for changing a labour's opening balance."""

    opening_balance: Decimal


class LabourResponse(BaseModel):
    """Schema for labour response."""

    model_config = ConfigDict(from_attributes=True)

    labour_id: UUID
    full_name: str
    phone: str | None = None
    address: str | None = None
    emergency_contact: str | None = None
    is_active: bool
    opening_balance: Decimal
    balance: Decimal
    created_at: datetime


class LabourListResponse(BaseModel):
    items: list[LabourResponse]
    total: int


class BalanceResponse(BaseModel):
    labour_id: UUID
    balance: Decimal


# ============================================================================
# Ledger event schemas
# ============================================================================


class EntryCreate(BaseModel):
    """Schema for recording a wage entry. Date defaults to today."""

    entry_date: date | None = None
    amount: Decimal | None = None
    attendance_status: str = "present"
    work_type: str | None = None
    category: str | None = None
    subcategory: str | None = None
    notes: str | None = None


class PaymentCreate(BaseModel):
    """Schema for recording a payment. Date defaults to today."""

    payment_date: date | None = None
    amount: Decimal | None = None
    mode: str | None = None
    narration: str | None = None


class EventUpdate(BaseModel):
    """Schema for editing an event. Only supplied fields change."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    event_date: date | None = Field(default=None, alias="date")
    amount: Decimal | None = None
    attendance_status: str | None = None
    work_type: str | None = None
    category: str | None = None
    subcategory: str | None = None
    notes: str | None = None
    mode: str | None = None
    narration: str | None = None


class LedgerEventResponse(BaseModel):
    """Snapshot of a ledger event."""

    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    labour_id: UUID
    kind: EventKind
    event_date: date
    amount: Decimal
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None


class MutationResponse(BaseModel):
    """Result of a successful ledger mutation."""

    status: str
    labour_id: UUID | None = None
    event: LedgerEventResponse | None = None
    balance: Decimal | None = None


class StatementLineResponse(BaseModel):
    event: LedgerEventResponse
    balance_after: Decimal
    details: dict[str, Any]


class StatementResponse(BaseModel):
    labour_id: UUID
    opening_balance: Decimal
    balance: Decimal
    lines: list[StatementLineResponse]


# ============================================================================
# Maintenance schemas
# ============================================================================


class RecalculateRequest(BaseModel):
    labour_ids: list[UUID] | None = None
    dry_run: bool = False


class LabourRecalculationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    labour_id: UUID
    event_count: int
    entries_corrected: int
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None
    error: str | None = None


class RecalculateResponse(BaseModel):
    dry_run: bool
    labours_processed: int
    entries_corrected: int
    labours: list[LabourRecalculationResponse]


class DiscrepancyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    labour_id: UUID
    field: str
    expected: Decimal
    actual: Decimal
    event_id: UUID | None = None
    event_date: date | None = None


class VerifyResponse(BaseModel):
    consistent: bool
    labours_checked: int
    discrepancies: list[DiscrepancyResponse]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
    errors: list[str] = Field(default_factory=list)
