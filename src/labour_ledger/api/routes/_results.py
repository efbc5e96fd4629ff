"""Mapping of ledger mutation results onto HTTP responses."""

from fastapi import status

from labour_ledger.api.schemas import LedgerEventResponse, MutationResponse
from labour_ledger.facade import MutationResult, MutationStatus

STATUS_CODES = {
    MutationStatus.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    MutationStatus.DUPLICATE_ENTRY: status.HTTP_409_CONFLICT,
    MutationStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    MutationStatus.PERSISTENCE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class MutationRejected(Exception):
    """Raised by a route when the ledger refused a mutation."""

    def __init__(self, result: MutationResult):
        self.result = result
        self.status_code = STATUS_CODES[result.status]
        super().__init__(result.error)


def to_response(result: MutationResult) -> MutationResponse:
    """Return the response body for an applied result.

    Raises:
        MutationRejected: the result carries any status other than applied
    """
    if not result.ok:
        raise MutationRejected(result)
    return MutationResponse(
        status=result.status.value,
        labour_id=result.labour_id,
        event=LedgerEventResponse.model_validate(result.event) if result.event else None,
        balance=result.balance,
    )
