"""
Finite state machine for the booking checkout flow.

Defines the six checkout steps and the explicit transitions between them.
Every flow follows a deterministic path through the state graph; moving
back to an earlier step is a transition too, so the history records it.

Usage:
    sm = BookingStateMachine()
    sm.transition(FlowTrigger.SERVICE_SELECTED)
    assert sm.current_state == FlowState.SELECTING_SPECIALIST
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """All steps of a checkout, in forward order."""
    SELECTING_SERVICE = "selecting_service"
    SELECTING_SPECIALIST = "selecting_specialist"
    SELECTING_SLOT = "selecting_slot"
    LOCKED = "locked"
    CONFIRMING = "confirming"
    COMMITTED = "committed"

    @property
    def order(self) -> int:
        return list(FlowState).index(self)


class FlowTrigger(str, Enum):
    """Events that cause state transitions."""
    SERVICE_SELECTED = "service_selected"
    SPECIALIST_SELECTED = "specialist_selected"
    SLOT_LOCKED = "slot_locked"
    CONFIRM_REQUESTED = "confirm_requested"
    BOOKING_COMMITTED = "booking_committed"
    SLOT_LOST = "slot_lost"
    BACK_TO_SERVICE = "back_to_service"
    BACK_TO_SPECIALIST = "back_to_specialist"
    BACK_TO_SLOT = "back_to_slot"
    RESTART = "restart"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: FlowState
    to_state: FlowState
    trigger: FlowTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: FlowState
    entered_at: datetime
    trigger: Optional[FlowTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


_S = FlowState
_T = FlowTrigger

# Trigger that returns the flow to each step from any later step.
BACK_TRIGGERS: dict[FlowState, FlowTrigger] = {
    _S.SELECTING_SERVICE: _T.BACK_TO_SERVICE,
    _S.SELECTING_SPECIALIST: _T.BACK_TO_SPECIALIST,
    _S.SELECTING_SLOT: _T.BACK_TO_SLOT,
}


class BookingStateMachine:
    """
    Deterministic state machine controlling checkout flow.

    Every transition must be explicitly defined. A trigger without a
    matching transition from the current state is rejected with the list
    of triggers that are allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Forward path ---
        Transition(_S.SELECTING_SERVICE, _S.SELECTING_SPECIALIST, _T.SERVICE_SELECTED),
        Transition(_S.SELECTING_SPECIALIST, _S.SELECTING_SLOT, _T.SPECIALIST_SELECTED),
        Transition(_S.SELECTING_SLOT, _S.LOCKED, _T.SLOT_LOCKED),
        Transition(_S.LOCKED, _S.CONFIRMING, _T.CONFIRM_REQUESTED),
        Transition(_S.CONFIRMING, _S.CONFIRMING, _T.CONFIRM_REQUESTED),
        Transition(_S.CONFIRMING, _S.COMMITTED, _T.BOOKING_COMMITTED),

        # --- Slot taken, lock expired or ledger conflict ---
        Transition(_S.LOCKED, _S.SELECTING_SLOT, _T.SLOT_LOST),
        Transition(_S.CONFIRMING, _S.SELECTING_SLOT, _T.SLOT_LOST),

        # --- Back navigation ---
        Transition(_S.SELECTING_SPECIALIST, _S.SELECTING_SERVICE, _T.BACK_TO_SERVICE),
        Transition(_S.SELECTING_SLOT, _S.SELECTING_SERVICE, _T.BACK_TO_SERVICE),
        Transition(_S.LOCKED, _S.SELECTING_SERVICE, _T.BACK_TO_SERVICE),
        Transition(_S.CONFIRMING, _S.SELECTING_SERVICE, _T.BACK_TO_SERVICE),
        Transition(_S.SELECTING_SLOT, _S.SELECTING_SPECIALIST, _T.BACK_TO_SPECIALIST),
        Transition(_S.LOCKED, _S.SELECTING_SPECIALIST, _T.BACK_TO_SPECIALIST),
        Transition(_S.CONFIRMING, _S.SELECTING_SPECIALIST, _T.BACK_TO_SPECIALIST),
        Transition(_S.LOCKED, _S.SELECTING_SLOT, _T.BACK_TO_SLOT),
        Transition(_S.CONFIRMING, _S.SELECTING_SLOT, _T.BACK_TO_SLOT),

        # --- Start over ---
        *[Transition(state, _S.SELECTING_SERVICE, _T.RESTART) for state in FlowState],
    ]

    def __init__(self) -> None:
        self._current_state = FlowState.SELECTING_SERVICE
        self._history: list[StateEntry] = [
            StateEntry(state=FlowState.SELECTING_SERVICE, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> FlowState:
        return self._current_state

    def transition(self, trigger: FlowTrigger) -> FlowState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new flow state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))

                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def rewind_to(self, state: FlowState) -> FlowState:
        """Go back to an earlier selection step. A no-op if already there."""
        if state == self._current_state:
            return state
        if state not in BACK_TRIGGERS or state.order > self._current_state.order:
            raise InvalidTransitionError(
                f"Cannot go back from '{self._current_state.value}' to '{state.value}'."
            )
        return self.transition(BACK_TRIGGERS[state])

    def get_valid_triggers(self) -> list[FlowTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Check if the flow has committed a booking."""
        return self._current_state == FlowState.COMMITTED
