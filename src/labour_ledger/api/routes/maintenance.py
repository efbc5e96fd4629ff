"""Maintenance endpoints: batch recalculation and consistency checks."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from labour_ledger.api.dependencies import Ledger
from labour_ledger.api.schemas import (
    DiscrepancyResponse,
    ErrorResponse,
    LabourRecalculationResponse,
    RecalculateRequest,
    RecalculateResponse,
    VerifyResponse,
)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/recalculate", response_model=RecalculateResponse)
def recalculate(ledger: Ledger, payload: RecalculateRequest) -> RecalculateResponse:
    """Rebuild ledgers from their opening balances."""
    report = ledger.recalculate(payload.labour_ids, dry_run=payload.dry_run)
    return RecalculateResponse(
        dry_run=report.dry_run,
        labours_processed=report.labours_processed,
        entries_corrected=report.entries_corrected,
        labours=[LabourRecalculationResponse.model_validate(r) for r in report.labours],
    )


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={404: {"model": ErrorResponse}},
)
def verify(
    ledger: Ledger,
    labour_id: Annotated[UUID | None, Query()] = None,
) -> VerifyResponse:
    """Compare stored balances with a replay from the opening balance."""
    report = ledger.verify([labour_id] if labour_id else None)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Labour {labour_id} not found",
        )
    return VerifyResponse(
        consistent=report.consistent,
        labours_checked=report.labours_checked,
        discrepancies=[DiscrepancyResponse.model_validate(d) for d in report.discrepancies],
    )
