from slotbook.workflow.booking_flow import BookingWorkflow
from slotbook.workflow.state_machine import (
    BookingStateMachine,
    FlowState,
    FlowTrigger,
    InvalidTransitionError,
)

__all__ = [
    "BookingWorkflow",
    "BookingStateMachine",
    "FlowState",
    "FlowTrigger",
    "InvalidTransitionError",
]
