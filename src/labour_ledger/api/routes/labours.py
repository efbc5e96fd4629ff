"""Labour and ledger entry endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from labour_ledger.api.dependencies import Ledger
from labour_ledger.api.routes._results import to_response
from labour_ledger.api.schemas import (
    BalanceResponse,
    EntryCreate,
    ErrorResponse,
    LabourCreate,
    LabourListResponse,
    LabourResponse,
    LedgerEventResponse,
    MutationResponse,
    OpeningBalanceUpdate,
    PaymentCreate,
    StatementLineResponse,
    StatementResponse,
)

router = APIRouter(prefix="/labours", tags=["labours"])


def _not_found(labour_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Labour {labour_id} not found",
    )


# ============================================================================
# Labour master data
# ============================================================================


@router.post(
    "",
    response_model=LabourResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
def create_labour(ledger: Ledger, payload: LabourCreate) -> LabourResponse:
    """Create a labour; the mirror balance starts at the opening balance."""
    result = ledger.create_labour(
        payload.full_name,
        opening_balance=payload.opening_balance,
        phone=payload.phone,
        address=payload.address,
        emergency_contact=payload.emergency_contact,
    )
    to_response(result)
    return LabourResponse.model_validate(ledger.get_labour(result.labour_id))


@router.get("", response_model=LabourListResponse)
def list_labours(
    ledger: Ledger,
    active_only: Annotated[bool, Query()] = True,
) -> LabourListResponse:
    """List labours ordered by name."""
    labours = ledger.list_labours(active_only=active_only)
    return LabourListResponse(
        items=[LabourResponse.model_validate(labour) for labour in labours],
        total=len(labours),
    )


@router.get(
    "/{labour_id}",
    response_model=LabourResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_labour(ledger: Ledger, labour_id: Annotated[UUID, Path()]) -> LabourResponse:
    labour = ledger.get_labour(labour_id)
    if labour is None:
        raise _not_found(labour_id)
    return LabourResponse.model_validate(labour)


@router.put(
    "/{labour_id}/opening-balance",
    response_model=MutationResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def set_opening_balance(
    ledger: Ledger,
    labour_id: Annotated[UUID, Path()],
    payload: OpeningBalanceUpdate,
) -> MutationResponse:
    """Change the opening balance and rebalance the whole ledger."""
    return to_response(ledger.set_opening_balance(labour_id, payload.opening_balance))


@router.delete(
    "/{labour_id}",
    response_model=MutationResponse,
    responses={404: {"model": ErrorResponse}},
)
def deactivate_labour(ledger: Ledger, labour_id: Annotated[UUID, Path()]) -> MutationResponse:
    """Deactivate a labour and purge its ledger events."""
    return to_response(ledger.deactivate_labour(labour_id))


# ============================================================================
# Balances and statements
# ============================================================================


@router.get(
    "/{labour_id}/balance",
    response_model=BalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_balance(ledger: Ledger, labour_id: Annotated[UUID, Path()]) -> BalanceResponse:
    balance = ledger.get_balance(labour_id)
    if balance is None:
        raise _not_found(labour_id)
    return BalanceResponse(labour_id=labour_id, balance=balance)


@router.get(
    "/{labour_id}/statement",
    response_model=StatementResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_statement(ledger: Ledger, labour_id: Annotated[UUID, Path()]) -> StatementResponse:
    """Ordered ledger with the running balance after each event."""
    lines = ledger.statement(labour_id)
    labour = ledger.get_labour(labour_id)
    if lines is None or labour is None:
        raise _not_found(labour_id)
    return StatementResponse(
        labour_id=labour_id,
        opening_balance=labour.opening_balance,
        balance=labour.balance,
        lines=[
            StatementLineResponse(
                event=LedgerEventResponse.model_validate(line.event),
                balance_after=line.balance_after,
                details=line.details,
            )
            for line in lines
        ],
    )


# ============================================================================
# Ledger events
# ============================================================================


@router.post(
    "/{labour_id}/entries",
    response_model=MutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_entry(
    ledger: Ledger,
    labour_id: Annotated[UUID, Path()],
    payload: EntryCreate,
) -> MutationResponse:
    """Record a wage entry; later entries are rebalanced."""
    result = ledger.apply_entry(
        labour_id,
        entry_date=payload.entry_date,
        amount=payload.amount,
        attendance_status=payload.attendance_status,
        work_type=payload.work_type,
        category=payload.category,
        subcategory=payload.subcategory,
        notes=payload.notes,
    )
    return to_response(result)


@router.post(
    "/{labour_id}/payments",
    response_model=MutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_payment(
    ledger: Ledger,
    labour_id: Annotated[UUID, Path()],
    payload: PaymentCreate,
) -> MutationResponse:
    """Record a payment; later entries are rebalanced."""
    result = ledger.apply_payment(
        labour_id,
        payment_date=payload.payment_date,
        amount=payload.amount,
        mode=payload.mode,
        narration=payload.narration,
    )
    return to_response(result)
