"""Ledger event edit/delete endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from labour_ledger.api.dependencies import Ledger
from labour_ledger.api.routes._results import to_response
from labour_ledger.api.schemas import ErrorResponse, EventUpdate, MutationResponse

router = APIRouter(prefix="/events", tags=["events"])


@router.patch(
    "/{event_id}",
    response_model=MutationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def edit_event(
    ledger: Ledger,
    event_id: Annotated[UUID, Path()],
    payload: EventUpdate,
) -> MutationResponse:
    """Edit a wage entry or payment; the cascade starts at the earlier of the two dates."""
    fields = payload.model_dump(exclude_unset=True)
    if "event_date" in fields:
        fields["date"] = fields.pop("event_date")
    return to_response(ledger.edit_event(event_id, **fields))


@router.delete(
    "/{event_id}",
    response_model=MutationResponse,
    responses={404: {"model": ErrorResponse}},
)
def delete_event(ledger: Ledger, event_id: Annotated[UUID, Path()]) -> MutationResponse:
    """Delete a wage entry or payment and rebalance what follows."""
    return to_response(ledger.delete_event(event_id))
