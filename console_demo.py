"""
Offline console demo: runs booking flows end to end in the terminal.

Uses the real engine, lock manager, ledger and workflow on an in-memory
store with the demo catalog. Time is driven by a manual clock so lock
expiry can be shown without waiting.

Usage:
    python console_demo.py
    python console_demo.py --scenario contention
    python console_demo.py --scenario reschedule
"""

import argparse
import sys
from datetime import date, datetime, time, timedelta

from slotbook.clock import ManualClock
from slotbook.config import settings
from slotbook.engine import BookingEngine
from slotbook.errors import BookingError
from slotbook.schemas.booking_schema import BookingStatus, CandidateSlot, SlotStatus
from slotbook.schemas.session_schema import Identity, Role
from slotbook.seed import seed_demo
from slotbook.workflow.booking_flow import BookingWorkflow

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

STATUS_COLORS = {
    SlotStatus.FREE: GREEN,
    SlotStatus.LOCKED: YELLOW,
    SlotStatus.BOOKED: RED,
}


def _next_monday(today: date) -> date:
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


class ConsoleSession:
    """Plays scripted booking scenarios against a seeded engine."""

    def __init__(self, today: date) -> None:
        self.day = _next_monday(today)
        self.clock = ManualClock(datetime.combine(today, time(8, 0)))
        self.engine = BookingEngine.from_settings(settings, clock=self.clock)
        seed_demo(self.engine, today)

    def say(self, who: str, text: str) -> None:
        print(f"{BLUE}{BOLD}[{who}]{RESET} {text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_slots(self, slots: list[CandidateSlot]) -> None:
        cells = [
            f"{STATUS_COLORS[s.status]}{s.start_time:%H:%M}{RESET}" for s in slots
        ]
        print("  " + " ".join(cells) if cells else f"  {DIM}(no slots){RESET}")

    def flow_for(self, user_id: str) -> BookingWorkflow:
        return BookingWorkflow(self.engine, lambda: Identity(user_id, Role.USER))

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    def scenario_booking(self) -> None:
        flow = self.flow_for("user-001")
        flow.select_service("service-1")
        flow.select_specialist("specialist-1")
        slots = flow.available_slots(self.day)
        self.say("user-001", f"Slots for Consultation with Anna on {self.day:%A %d %B}:")
        self.show_slots(slots)

        free = next(s for s in slots if s.status == SlotStatus.FREE)
        until = flow.select_slot(free.start_time)
        self.system_log(f"Locked {free.key} until {until:%H:%M}")
        booking = flow.confirm()
        self.say("engine", f"Booking {booking.id} confirmed for {booking.start_time:%H:%M}.")
        self.system_log(f"State trace: {' -> '.join(flow.sm.get_state_trace())}")

    def scenario_contention(self) -> None:
        alice, bob = self.flow_for("alice"), self.flow_for("bob")
        for flow in (alice, bob):
            flow.select_service("service-4")
            flow.select_specialist("specialist-2")
        target = datetime.combine(self.day, time(11, 0))

        alice.select_slot(target)
        self.say("alice", f"Holding {target:%H:%M}.")
        self.clock.advance(minutes=1)
        try:
            bob.select_slot(target)
        except BookingError as exc:
            self.say("bob", f"{RED}{exc}{RESET}")
        self.say("bob", "What bob sees:")
        self.show_slots(bob.available_slots(self.day))

        self.clock.advance(minutes=5)
        self.system_log("Six minutes pass; alice's lock lapses.")
        bob.select_slot(target)
        bob.confirm()
        self.say("bob", f"Booked {target:%H:%M}.")
        try:
            alice.confirm()
        except BookingError as exc:
            self.say("alice", f"{RED}{exc}{RESET}")
        self.system_log(f"alice is back at: {alice.state.value}")

    def scenario_reschedule(self) -> None:
        admin = BookingWorkflow(self.engine, lambda: Identity("admin-1", Role.ADMIN))
        mine = self.engine.list_bookings(Identity("user-001", Role.USER))
        booking = next(b for b in mine if b.status == BookingStatus.ACTIVE)
        self.say("user-001", f"Moving {booking.id} from {booking.start_time:%a %H:%M}.")

        clash = next(
            b for b in self.engine.ledger.list_all()
            if b.specialist_id == booking.specialist_id and b.id != booking.id and b.is_blocking
        )
        for new_start in (clash.start_time, booking.start_time + timedelta(days=1)):
            try:
                moved = admin.reschedule_booking(booking.id, new_start)
                self.say("engine", f"Moved to {moved.start_time:%a %d %H:%M}.")
            except BookingError as exc:
                self.say("engine", f"{RED}{exc}{RESET}")

    SCENARIOS = {
        "booking": scenario_booking,
        "contention": scenario_contention,
        "reschedule": scenario_reschedule,
    }

    def run_scenario(self, scenario: str) -> None:
        play = self.SCENARIOS.get(scenario)
        if play is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SLOTBOOK - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Lock window: {settings.scheduling.lock_duration_minutes} min, "
              f"grid: {settings.scheduling.slot_step_minutes} min{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()
        play(self)
        print(f"\n{BOLD}{'=' * 60}{RESET}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="slotbook console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default="booking",
    )
    args = parser.parse_args(argv)
    ConsoleSession(date.today()).run_scenario(args.scenario)
    return 0


if __name__ == "__main__":
    sys.exit(main())
