"""
Checkout orchestration: service -> specialist -> slot -> lock -> confirm.

One BookingWorkflow drives one user's checkout. It keeps the selections
made so far, holds at most one slot lock, and moves through the
BookingStateMachine as each step completes or has to be redone.

Usage:
    flow = BookingWorkflow(engine, lambda: Identity("user-1", Role.USER))
    flow.select_service("service-1")
    flow.select_specialist("specialist-1")
    slots = flow.available_slots(day)
    flow.select_slot(slots[0].start_time)
    booking = flow.confirm()
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from slotbook.engine import BookingEngine
from slotbook.errors import (
    AuthenticationRequired,
    NotFound,
    NotPermitted,
    SlotConflict,
    SlotLockedByOther,
)
from slotbook.logging_context import get_session_logger, session_scope
from slotbook.schemas.booking_schema import Booking, CandidateSlot, SlotKey
from slotbook.schemas.session_schema import FlowSelection, Identity, Role
from slotbook.workflow.state_machine import (
    BookingStateMachine,
    FlowState,
    FlowTrigger,
    InvalidTransitionError,
)

logger = get_session_logger(__name__)

IdentityProvider = Callable[[], Identity]


class BookingWorkflow:
    """
    One user's multi-step checkout.

    The identity provider is asked for the current user on every step
    that needs one, so signing in part-way through a flow works.
    """

    def __init__(
        self,
        engine: BookingEngine,
        identity_provider: IdentityProvider,
        session_id: Optional[str] = None,
    ) -> None:
        self._engine = engine
        self._identity = identity_provider
        self.session_id = session_id or f"FLOW-{uuid.uuid4().hex[:8]}"
        self.sm = BookingStateMachine()
        self.selection = FlowSelection()

    @property
    def state(self) -> FlowState:
        return self.sm.current_state

    # --- navigation ---

    def enter(self, step: FlowState) -> FlowState:
        """
        Show a step, falling back to the first step whose selection is missing.

        Going back to an earlier step clears the selections made from that
        step on and gives up any slot lock. A committed flow stays put until
        ``reset``. Returns the step the flow actually ends up on.
        """
        if self.sm.is_terminal():
            return self.state
        if not self._prerequisites_met(step):
            return self.state
        if step.order < self.state.order:
            self._rewind(step)
        return self.state

    def _first_missing_step(self) -> Optional[FlowState]:
        if self.selection.service_id is None:
            return FlowState.SELECTING_SERVICE
        if self.selection.specialist_id is None:
            return FlowState.SELECTING_SPECIALIST
        if self.selection.slot_key is None:
            return FlowState.SELECTING_SLOT
        return None

    def _prerequisites_met(self, step: FlowState) -> bool:
        """True if every step before ``step`` has its selection; else fall back to the gap."""
        missing = self._first_missing_step()
        if missing is None or missing.order >= step.order:
            return True
        logger.debug("Cannot show %s yet, falling back to %s", step.value, missing.value)
        if missing.order < self.state.order:
            self._rewind(missing)
        return False

    def _require(self, step: FlowState) -> None:
        if self.sm.is_terminal() or not self._prerequisites_met(step):
            raise InvalidTransitionError(
                f"'{step.value}' is not available; flow is at '{self.state.value}'."
            )

    def _rewind(self, step: FlowState) -> None:
        self._release_held_lock()
        if step == FlowState.SELECTING_SERVICE:
            self.selection = FlowSelection()
        elif step == FlowState.SELECTING_SPECIALIST:
            self.selection.specialist_id = None
            self.selection.date = None
        self.sm.rewind_to(step)

    # --- selections ---

    def select_service(self, service_id: str) -> FlowState:
        self._engine.catalog.require_service(service_id)
        if self.sm.is_terminal():
            raise InvalidTransitionError("Booking already committed; reset the flow to start again.")
        self.enter(FlowState.SELECTING_SERVICE)
        self.selection.service_id = service_id
        return self.sm.transition(FlowTrigger.SERVICE_SELECTED)

    def select_specialist(self, specialist_id: str) -> FlowState:
        """
        Raises:
            InvalidTransitionError: No service chosen yet (the flow falls
                back to service selection).
            ServiceNotOffered: The specialist does not perform the service.
        """
        self._require(FlowState.SELECTING_SPECIALIST)
        self._engine.pairing(specialist_id, self.selection.service_id)
        self.enter(FlowState.SELECTING_SPECIALIST)
        self.selection.specialist_id = specialist_id
        return self.sm.transition(FlowTrigger.SPECIALIST_SELECTED)

    def select_date(self, day: date) -> FlowState:
        """Choose the day to browse. A held slot on another day is given up."""
        self._require(FlowState.SELECTING_SLOT)
        held = self.selection.slot_key
        if held is not None and held.start.date() != day:
            self.enter(FlowState.SELECTING_SLOT)
        self.selection.date = day
        return self.state

    def available_slots(self, day: Optional[date] = None) -> list[CandidateSlot]:
        """
        Slots for the chosen day, seen from this user's side.

        The user's own locked slot shows as free. Returns an empty list,
        after falling back a step, if service or specialist is missing.
        """
        if self.sm.is_terminal() or not self._prerequisites_met(FlowState.SELECTING_SLOT):
            return []
        day = day or self.selection.date
        if day is None:
            return []
        self.selection.date = day
        return self._engine.resolve_availability(
            self.selection.specialist_id,
            self.selection.service_id,
            day,
            self._identity().user_id or "",
        )

    def select_slot(self, start: datetime) -> datetime:
        """
        Lock the slot starting at ``start`` for the current user.

        Picking a different slot releases the previous lock first; picking
        the same one renews it. Returns the lock expiry.

        Raises:
            AuthenticationRequired: Nobody is signed in.
            SlotLockedByOther: Someone else holds the slot; the flow stays
                on slot selection.
        """
        self._require(FlowState.SELECTING_SLOT)
        identity = self._identity()
        if not identity.is_authenticated:
            raise AuthenticationRequired("Please sign in to reserve a time slot.")

        key = SlotKey(self.selection.specialist_id, start)
        if self.selection.slot_key is not None and self.selection.slot_key != key:
            self.enter(FlowState.SELECTING_SLOT)

        with session_scope(self.session_id):
            lock = self._engine.acquire_lock(key, identity.user_id)
        self.selection.slot_key = key
        self.selection.lock_expires_at = lock.locked_until
        self.selection.date = start.date()
        if self.state == FlowState.SELECTING_SLOT:
            self.sm.transition(FlowTrigger.SLOT_LOCKED)
        logger.info("Slot %s held until %s", key, lock.locked_until)
        return lock.locked_until

    def lock_time_remaining(self) -> timedelta:
        """
        Time left on the held lock.

        When it has run out the slot is dropped and the flow goes back to
        slot selection.
        """
        if self.selection.lock_expires_at is None:
            return timedelta(0)
        remaining = self.selection.lock_expires_at - self._engine.clock.now()
        if remaining <= timedelta(0):
            logger.info("Lock on %s expired", self.selection.slot_key)
            self._lose_slot()
            return timedelta(0)
        return remaining

    # --- commit ---

    def confirm(self) -> Booking:
        """
        Write the booking for the held slot.

        Raises:
            InvalidTransitionError: No slot is held.
            AuthenticationRequired: Nobody is signed in. The flow waits on
                the confirming step and nothing is written.
            SlotLockedByOther: The lock lapsed and someone else took the
                slot. The flow returns to slot selection.
            SlotConflict: The ledger found an overlapping booking. The flow
                returns to slot selection.
        """
        self._require(FlowState.CONFIRMING)
        self.sm.transition(FlowTrigger.CONFIRM_REQUESTED)
        with session_scope(self.session_id):
            return self._commit()

    def _commit(self) -> Booking:
        identity = self._identity()
        if not identity.is_authenticated:
            logger.info("Confirmation halted: sign-in required")
            raise AuthenticationRequired("Please sign in to complete your booking.")

        key = self.selection.slot_key
        service = self._engine.catalog.require_service(self.selection.service_id)
        try:
            # Renewing proves the hold is still ours after any idle time.
            lock = self._engine.acquire_lock(key, identity.user_id)
            self.selection.lock_expires_at = lock.locked_until
            booking = self._engine.confirm_booking(
                key,
                service.id,
                self.selection.specialist_id,
                identity.user_id,
                key.start,
                key.start + timedelta(minutes=service.duration),
            )
        except (SlotLockedByOther, SlotConflict):
            self._engine.release_lock(key, identity.user_id)
            self._lose_slot()
            raise

        self.selection.booking_id = booking.id
        self.selection.clear_slot()
        self.sm.transition(FlowTrigger.BOOKING_COMMITTED)
        logger.info("Flow committed booking %s", booking.id)
        return booking

    def reset(self) -> FlowState:
        """Abandon the flow, giving up any held slot."""
        self._release_held_lock()
        self.selection = FlowSelection()
        return self.sm.transition(FlowTrigger.RESTART)

    # --- existing bookings ---

    def cancel_booking(self, booking_id: str) -> Booking:
        with session_scope(self.session_id):
            self._authorize(booking_id)
            return self._engine.cancel_booking(booking_id)

    def reschedule_booking(self, booking_id: str, new_start: datetime) -> Booking:
        """Move a booking, keeping its length."""
        with session_scope(self.session_id):
            booking = self._authorize(booking_id)
            length = booking.end_time - booking.start_time
            return self._engine.reschedule_booking(booking_id, new_start, new_start + length)

    # --- helpers ---

    def _authorize(self, booking_id: str) -> Booking:
        identity = self._identity()
        if not identity.is_authenticated:
            raise AuthenticationRequired("Please sign in to manage your bookings.")
        booking = self._engine.get_booking(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found.")
        if identity.role != Role.ADMIN and booking.user_id != identity.user_id:
            raise NotPermitted("You can only change your own bookings.")
        return booking

    def _release_held_lock(self) -> None:
        if self.selection.slot_key is None:
            return
        user_id = self._identity().user_id
        if user_id:
            self._engine.release_lock(self.selection.slot_key, user_id)
        self.selection.clear_slot()

    def _lose_slot(self) -> None:
        self.selection.clear_slot()
        if self.state in (FlowState.LOCKED, FlowState.CONFIRMING):
            self.sm.transition(FlowTrigger.SLOT_LOST)
