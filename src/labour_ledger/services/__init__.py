"""Supporting services."""

from labour_ledger.services.labour_service import LabourService
from labour_ledger.services.state_machine import (
    InvalidTransitionError,
    MutationState,
    MutationStateMachine,
)

__all__ = [
    "LabourService",
    "InvalidTransitionError",
    "MutationState",
    "MutationStateMachine",
]
