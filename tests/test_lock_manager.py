"""Tests for the slot lock table."""

import threading
from datetime import timedelta

import pytest

from slotbook.booking.lock_manager import LockManager
from slotbook.errors import InvalidDuration, SlotLockedByOther
from slotbook.schemas.booking_schema import SlotKey
from slotbook.store.base import LOCKS

from tests.conftest import MONDAY, at

KEY = SlotKey("spec", at(MONDAY, 10))


@pytest.fixture
def locks(store, clock):
    return LockManager(store, clock)


class TestAcquire:
    def test_lock_runs_for_default_window(self, locks, clock):
        lock = locks.acquire(KEY, "user-a")
        assert lock.locked_by == "user-a"
        assert lock.locked_until == clock.now() + timedelta(minutes=5)

    def test_other_user_denied_while_live(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=1)
        with pytest.raises(SlotLockedByOther, match="someone else"):
            locks.acquire(KEY, "user-b")

    def test_other_user_granted_after_expiry(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=6)
        lock = locks.acquire(KEY, "user-b")
        assert lock.locked_by == "user-b"

    def test_lock_expires_exactly_at_locked_until(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=5)
        assert locks.acquire(KEY, "user-b").locked_by == "user-b"

    def test_holder_renews(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=3)
        renewed = locks.acquire(KEY, "user-a")
        assert renewed.locked_until == clock.now() + timedelta(minutes=5)

    def test_custom_duration(self, locks, clock):
        lock = locks.acquire(KEY, "user-a", duration_minutes=10)
        assert lock.locked_until == clock.now() + timedelta(minutes=10)

    def test_non_positive_duration_rejected(self, locks):
        with pytest.raises(InvalidDuration):
            locks.acquire(KEY, "user-a", duration_minutes=0)

    def test_distinct_keys_independent(self, locks):
        locks.acquire(KEY, "user-a")
        other = SlotKey("spec", at(MONDAY, 10, 30))
        assert locks.acquire(other, "user-b").locked_by == "user-b"

    def test_concurrent_acquirers_single_winner(self, locks):
        winners, losers = [], []
        barrier = threading.Barrier(8)

        def contend(user_id):
            barrier.wait()
            try:
                locks.acquire(KEY, user_id)
                winners.append(user_id)
            except SlotLockedByOther:
                losers.append(user_id)

        threads = [threading.Thread(target=contend, args=(f"user-{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(winners) == 1
        assert len(losers) == 7
        assert locks.get(KEY).locked_by == winners[0]


class TestRelease:
    def test_holder_releases(self, locks):
        locks.acquire(KEY, "user-a")
        locks.release(KEY, "user-a")
        assert locks.get(KEY) is None
        assert locks.acquire(KEY, "user-b").locked_by == "user-b"

    def test_non_holder_release_is_noop(self, locks):
        locks.acquire(KEY, "user-a")
        locks.release(KEY, "user-b")
        assert locks.get(KEY).locked_by == "user-a"

    def test_release_unlocked_key_is_noop(self, locks):
        locks.release(KEY, "user-a")
        assert locks.get(KEY) is None


class TestQueries:
    def test_get_hides_expired(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=5)
        assert locks.get(KEY) is None

    def test_active_locks_exact_specialist_match(self, locks):
        locks.acquire(KEY, "user-a")
        locks.acquire(SlotKey("spec-2", at(MONDAY, 10)), "user-b")
        active = locks.active_locks_for("spec")
        assert list(active) == [KEY]

    def test_active_locks_skip_expired(self, locks, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=6)
        assert locks.active_locks_for("spec") == {}

    def test_purge_expired(self, locks, store, clock):
        locks.acquire(KEY, "user-a")
        clock.advance(minutes=4)
        fresh = SlotKey("spec", at(MONDAY, 11))
        locks.acquire(fresh, "user-b")
        clock.advance(minutes=2)

        assert locks.purge_expired() == 1
        assert store.get(LOCKS, KEY) is None
        assert store.get(LOCKS, fresh) is not None
