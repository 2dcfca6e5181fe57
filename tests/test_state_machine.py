"""Tests for the checkout state machine."""

import pytest

from slotbook.workflow.state_machine import (
    BookingStateMachine,
    FlowState,
    FlowTrigger,
    InvalidTransitionError,
)


@pytest.fixture
def state_machine():
    return BookingStateMachine()


def advance_to_locked(sm):
    sm.transition(FlowTrigger.SERVICE_SELECTED)
    sm.transition(FlowTrigger.SPECIALIST_SELECTED)
    sm.transition(FlowTrigger.SLOT_LOCKED)


class TestInitialState:
    def test_starts_selecting_service(self, state_machine):
        assert state_machine.current_state == FlowState.SELECTING_SERVICE

    def test_initial_history_has_one_entry(self, state_machine):
        assert len(state_machine.get_history()) == 1

    def test_not_terminal_at_start(self, state_machine):
        assert not state_machine.is_terminal()

    def test_states_ordered(self):
        assert FlowState.SELECTING_SERVICE.order < FlowState.LOCKED.order < FlowState.COMMITTED.order


class TestForwardPath:
    def test_happy_path(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        new = state_machine.transition(FlowTrigger.BOOKING_COMMITTED)
        assert new == FlowState.COMMITTED
        assert state_machine.is_terminal()

    def test_trace_records_every_state(self, state_machine):
        advance_to_locked(state_machine)
        assert state_machine.get_state_trace() == [
            "selecting_service", "selecting_specialist", "selecting_slot", "locked",
        ]

    def test_confirm_can_be_retried(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        assert state_machine.transition(FlowTrigger.CONFIRM_REQUESTED) == FlowState.CONFIRMING

    def test_cannot_skip_steps(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="Valid triggers"):
            state_machine.transition(FlowTrigger.SLOT_LOCKED)

    def test_cannot_commit_without_confirming(self, state_machine):
        advance_to_locked(state_machine)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(FlowTrigger.BOOKING_COMMITTED)


class TestSlotLost:
    def test_from_locked(self, state_machine):
        advance_to_locked(state_machine)
        assert state_machine.transition(FlowTrigger.SLOT_LOST) == FlowState.SELECTING_SLOT

    def test_from_confirming(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        assert state_machine.transition(FlowTrigger.SLOT_LOST) == FlowState.SELECTING_SLOT

    def test_not_from_selecting_slot(self, state_machine):
        state_machine.transition(FlowTrigger.SERVICE_SELECTED)
        state_machine.transition(FlowTrigger.SPECIALIST_SELECTED)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(FlowTrigger.SLOT_LOST)


class TestRewind:
    def test_rewind_to_service(self, state_machine):
        advance_to_locked(state_machine)
        assert state_machine.rewind_to(FlowState.SELECTING_SERVICE) == FlowState.SELECTING_SERVICE

    def test_rewind_to_current_is_noop(self, state_machine):
        state_machine.transition(FlowTrigger.SERVICE_SELECTED)
        before = len(state_machine.get_history())
        state_machine.rewind_to(FlowState.SELECTING_SPECIALIST)
        assert len(state_machine.get_history()) == before

    def test_cannot_rewind_forward(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.rewind_to(FlowState.SELECTING_SLOT)

    def test_cannot_rewind_to_locked(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        with pytest.raises(InvalidTransitionError):
            state_machine.rewind_to(FlowState.LOCKED)

    def test_committed_cannot_go_back(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        state_machine.transition(FlowTrigger.BOOKING_COMMITTED)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(FlowTrigger.BACK_TO_SLOT)


class TestRestart:
    @pytest.mark.parametrize("steps", [0, 1, 2, 3])
    def test_restart_from_anywhere(self, state_machine, steps):
        triggers = [
            FlowTrigger.SERVICE_SELECTED,
            FlowTrigger.SPECIALIST_SELECTED,
            FlowTrigger.SLOT_LOCKED,
        ]
        for trigger in triggers[:steps]:
            state_machine.transition(trigger)
        assert state_machine.transition(FlowTrigger.RESTART) == FlowState.SELECTING_SERVICE

    def test_restart_after_commit(self, state_machine):
        advance_to_locked(state_machine)
        state_machine.transition(FlowTrigger.CONFIRM_REQUESTED)
        state_machine.transition(FlowTrigger.BOOKING_COMMITTED)
        state_machine.transition(FlowTrigger.RESTART)
        assert not state_machine.is_terminal()

    def test_valid_triggers_from_locked(self, state_machine):
        advance_to_locked(state_machine)
        valid = state_machine.get_valid_triggers()
        assert FlowTrigger.CONFIRM_REQUESTED in valid
        assert FlowTrigger.SLOT_LOST in valid
        assert FlowTrigger.RESTART in valid
        assert FlowTrigger.SERVICE_SELECTED not in valid
