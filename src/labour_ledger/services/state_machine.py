"""Ledger mutation state machine with transition validation."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    """Stages a ledger mutation moves through."""

    VALIDATE = "validate"
    SEED = "seed"
    RECOMPUTE = "recompute"
    PERSIST = "persist"
    MIRROR_UPDATE = "mirror_update"
    DONE = "done"
    FAIL = "fail"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MutationStateMachine:
    """State machine for a single insert/edit/delete.

    Allowed transitions:
    - validate → seed
    - seed → recompute
    - recompute → persist
    - persist → mirror_update
    - mirror_update → done
    - any non-terminal state → fail
    """

    # Define valid transitions: {from_state: [allowed_to_states]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        MutationState.VALIDATE: [MutationState.SEED, MutationState.FAIL],
        MutationState.SEED: [MutationState.RECOMPUTE, MutationState.FAIL],
        MutationState.RECOMPUTE: [MutationState.PERSIST, MutationState.FAIL],
        MutationState.PERSIST: [MutationState.MIRROR_UPDATE, MutationState.FAIL],
        MutationState.MIRROR_UPDATE: [MutationState.DONE, MutationState.FAIL],
        MutationState.DONE: [],  # Terminal state
        MutationState.FAIL: [],  # Terminal state
    }

    TERMINAL = {MutationState.DONE, MutationState.FAIL}

    def __init__(self, operation: str, initial: MutationState = MutationState.VALIDATE):
        self.operation = operation
        self.state = initial
        self.history: list[MutationState] = [initial]

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_state, [])
        return to_state in allowed

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidTransitionError(from_state, to_state)

    @classmethod
    def get_next_states(cls, current_state: str) -> list[str]:
        """Get list of valid next states from current state."""
        return cls.VALID_TRANSITIONS.get(current_state, [])

    @property
    def is_terminal(self) -> bool:
        return self.state in self.TERMINAL

    def advance(self, to_state: MutationState) -> None:
        """Move to the next state, validating the transition."""
        self.validate_transition(self.state, to_state)
        logger.debug("%s: %s -> %s", self.operation, self.state.value, to_state.value)
        self.state = to_state
        self.history.append(to_state)

    def fail(self, reason: str) -> None:
        """Move to the fail state unless already terminal."""
        if self.is_terminal:
            return
        logger.debug("%s: %s -> fail (%s)", self.operation, self.state.value, reason)
        self.state = MutationState.FAIL
        self.history.append(MutationState.FAIL)
