"""
Tests for collection request state transitions
"""

import pytest

from app.buisness.collections.errors import StateTransitionError
from app.buisness.collections.state_machine import RequestStateMachine as SM


@pytest.mark.parametrize('from_state, to_state', [
    (SM.PENDING, SM.SCHEDULED),
    (SM.PENDING, SM.CANCELLED),
    (SM.SCHEDULED, SM.ASSIGNED),
    (SM.SCHEDULED, SM.COMPLETED),
    (SM.SCHEDULED, SM.CANCELLED),
    (SM.ASSIGNED, SM.COMPLETED),
])
def test_allowed_transitions(from_state, to_state):
    assert SM.can_transition(from_state, to_state)
    SM.validate_transition(from_state, to_state)


@pytest.mark.parametrize('from_state, to_state', [
    (SM.PENDING, SM.COMPLETED),
    (SM.PENDING, SM.ASSIGNED),
    (SM.ASSIGNED, SM.CANCELLED),
    (SM.COMPLETED, SM.CANCELLED),
    (SM.CANCELLED, SM.SCHEDULED),
    (SM.SCHEDULED, SM.PENDING),
    (SM.SCHEDULED, SM.SCHEDULED),
])
def test_rejected_transitions(from_state, to_state):
    assert not SM.can_transition(from_state, to_state)
    with pytest.raises(StateTransitionError):
        SM.validate_transition(from_state, to_state)


def test_error_carries_states():
    with pytest.raises(StateTransitionError) as exc_info:
        SM.validate_transition(SM.PENDING, SM.COMPLETED, request_id=42)
    error = exc_info.value
    assert (error.request_id, error.from_state, error.to_state) == (42, 'PENDING', 'COMPLETED')
    assert 'PENDING' in str(error) and 'COMPLETED' in str(error)


def test_terminal_states_allow_nothing():
    for state in SM.TERMINAL_STATES:
        assert SM.get_allowed_transitions(state) == set()


def test_allowed_transitions_are_copies():
    allowed = SM.get_allowed_transitions(SM.PENDING)
    allowed.add(SM.COMPLETED)
    assert SM.COMPLETED not in SM.get_allowed_transitions(SM.PENDING)
