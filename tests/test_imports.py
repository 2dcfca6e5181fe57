"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

from datetime import date

from slotbook.schemas.booking_schema import BookingStatus


class TestPackageImports:
    def test_import_scheduling(self):
        from slotbook.scheduling import AvailabilityResolver, overlaps, slots_in_window
        assert callable(overlaps)

    def test_import_booking(self):
        from slotbook.booking import BookingLedger, Catalog, LockManager
        assert LockManager is not None

    def test_import_store(self):
        from slotbook.store import BOOKINGS, LOCKS, InMemoryStore
        assert BOOKINGS != LOCKS

    def test_import_workflow(self):
        from slotbook.workflow import BookingStateMachine, FlowState
        assert BookingStateMachine().current_state == FlowState.SELECTING_SERVICE


class TestConfigImport:
    def test_import_config(self):
        from slotbook.config import settings
        assert settings.scheduling.slot_step_minutes >= 1
        assert settings.app_name


class TestSeedData:
    def test_seed_demo_bookings(self, engine, clock):
        from slotbook.seed import DEMO_BOOKINGS, seed_demo

        seed_demo(engine, clock.now().date())
        bookings = engine.ledger.list_all()
        assert len(bookings) == len(DEMO_BOOKINGS)
        assert sum(b.status == BookingStatus.COMPLETED for b in bookings) == 1


class TestConsoleDemo:
    def test_console_session_seeds_engine(self):
        from console_demo import ConsoleSession
        session = ConsoleSession(date(2025, 3, 12))
        assert session.day == date(2025, 3, 17)
        assert session.engine.catalog.list_services()

    def test_booking_scenario_runs(self, capsys):
        from console_demo import ConsoleSession
        ConsoleSession(date(2025, 3, 12)).run_scenario("booking")
        assert "confirmed" in capsys.readouterr().out
