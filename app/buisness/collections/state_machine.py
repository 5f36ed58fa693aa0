"""
State machine for the collection request lifecycle

Encodes valid transitions. Keeps "what is allowed" separate from
"how persistence occurs".
"""

from typing import Dict, Optional, Set
from app.buisness.collections.errors import StateTransitionError


class RequestStateMachine:
    """
    State machine for CollectionRequest.state transitions.

    Lifecycle moves forward only:
        PENDING -> SCHEDULED -> ASSIGNED -> COMPLETED
    PENDING and SCHEDULED may be cancelled. Once a company has been assigned
    the request can no longer be cancelled.
    """

    PENDING = 'PENDING'
    SCHEDULED = 'SCHEDULED'
    ASSIGNED = 'ASSIGNED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    STATES = (PENDING, SCHEDULED, ASSIGNED, COMPLETED, CANCELLED)

    # Terminal states (cannot transition from these)
    TERMINAL_STATES = {COMPLETED, CANCELLED}

    # Valid transitions: from_state -> set of allowed to_state values
    TRANSITIONS: Dict[str, Set[str]] = {
        PENDING: {SCHEDULED, CANCELLED},
        SCHEDULED: {ASSIGNED, COMPLETED, CANCELLED},
        ASSIGNED: {COMPLETED},
    }

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """
        Check if transition is valid.

        Unlike a status field, every lifecycle transition has a side effect,
        so staying in the same state is not a valid transition.
        """
        if from_state in cls.TERMINAL_STATES:
            return False
        return to_state in cls.TRANSITIONS.get(from_state, set())

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str, request_id: Optional[int] = None) -> None:
        """
        Validate transition and raise exception if invalid.

        Raises:
            StateTransitionError: If transition is not allowed
        """
        if not cls.can_transition(from_state, to_state):
            raise StateTransitionError(
                f"Invalid request state transition: {from_state} → {to_state}",
                request_id=request_id,
                from_state=from_state,
                to_state=to_state,
            )

    @classmethod
    def get_allowed_transitions(cls, from_state: str) -> Set[str]:
        """Get set of allowed target states from current state"""
        if from_state in cls.TERMINAL_STATES:
            return set()
        return set(cls.TRANSITIONS.get(from_state, set()))
