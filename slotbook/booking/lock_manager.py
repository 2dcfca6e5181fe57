"""
Short-lived exclusive holds on slot keys.

A lock gives one user a window to finish checkout without another user
grabbing the same visible slot. It is advisory: the ledger re-checks
conflicts on every write regardless of who holds a lock.

Usage:
    locks = LockManager(store, clock)
    lock = locks.acquire(key, "user-1")         # Locked(user-1, now + 5 min)
    locks.acquire(key, "user-1")                # renewed
    locks.release(key, "user-1")                # Unlocked
"""

from datetime import timedelta
from typing import Optional

from slotbook.clock import Clock
from slotbook.errors import InvalidDuration, SlotLockedByOther
from slotbook.logging_context import get_session_logger
from slotbook.schemas.booking_schema import SlotKey, SlotLock
from slotbook.store.base import LOCKS, KeyValueStore

logger = get_session_logger(__name__)

DEFAULT_LOCK_MINUTES = 5


class LockManager:
    """
    Per-key lock table with lazy expiry.

    Each acquire/release is a read followed by a compare-and-swap on that
    key alone. If the swap loses a race the current value is re-read and
    the decision made again, so two acquirers can never both see the key
    unlocked and both win. Expired entries count as absent on every read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock,
        default_minutes: int = DEFAULT_LOCK_MINUTES,
    ) -> None:
        self._store = store
        self._clock = clock
        self._default_minutes = default_minutes

    def acquire(
        self, key: SlotKey, requester_id: str, duration_minutes: Optional[int] = None
    ) -> SlotLock:
        """
        Grant or renew a lock on ``key`` for ``requester_id``.

        Succeeds when the key is unlocked, its lock has expired, or the
        requester already holds it (renewal). ``locked_until`` is always
        set to now + duration.

        Raises:
            SlotLockedByOther: A different user holds a live lock.
            InvalidDuration: If the duration is not positive.
        """
        minutes = self._default_minutes if duration_minutes is None else duration_minutes
        if minutes <= 0:
            raise InvalidDuration(f"Lock duration must be positive, got {minutes} minutes.")

        while True:
            now = self._clock.now()
            current: Optional[SlotLock] = self._store.get(LOCKS, key)
            if (
                current is not None
                and current.is_active(now)
                and current.locked_by != requester_id
            ):
                logger.info("Lock on %s denied to %s (held by %s)", key, requester_id, current.locked_by)
                raise SlotLockedByOther(
                    "This time slot is being booked by someone else. Please choose another time."
                )

            granted = SlotLock(
                key=key,
                locked_by=requester_id,
                locked_until=now + timedelta(minutes=minutes),
            )
            if self._store.compare_and_swap(LOCKS, key, current, granted):
                renewed = current is not None and current.locked_by == requester_id
                logger.info(
                    "Lock on %s %s to %s until %s",
                    key, "renewed" if renewed else "granted", requester_id, granted.locked_until,
                )
                return granted
            logger.debug("Lost race on %s, re-reading", key)

    def release(self, key: SlotKey, requester_id: str) -> None:
        """Drop the lock if ``requester_id`` holds it. Otherwise do nothing."""
        while True:
            current: Optional[SlotLock] = self._store.get(LOCKS, key)
            if current is None or current.locked_by != requester_id:
                return
            if self._store.compare_and_swap(LOCKS, key, current, None):
                logger.info("Lock on %s released by %s", key, requester_id)
                return

    def get(self, key: SlotKey) -> Optional[SlotLock]:
        """Return the live lock on ``key``, or None if unlocked or expired."""
        current: Optional[SlotLock] = self._store.get(LOCKS, key)
        if current is None or not current.is_active(self._clock.now()):
            return None
        return current

    def active_locks_for(self, specialist_id: str) -> dict[SlotKey, SlotLock]:
        """Live locks on slots belonging to exactly this specialist."""
        now = self._clock.now()
        locks = self._store.list_by_predicate(
            LOCKS,
            lambda lock: lock.key.specialist_id == specialist_id and lock.is_active(now),
        )
        return {lock.key: lock for lock in locks}

    def purge_expired(self) -> int:
        """Delete expired entries from the table. Returns how many were removed."""
        now = self._clock.now()
        removed = 0
        for lock in self._store.list_by_predicate(LOCKS, lambda lock: not lock.is_active(now)):
            # Skip entries renewed since the scan.
            if self._store.compare_and_swap(LOCKS, lock.key, lock, None):
                removed += 1
        if removed:
            logger.debug("Purged %d expired locks", removed)
        return removed
