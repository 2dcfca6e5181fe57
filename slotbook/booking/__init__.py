from slotbook.booking.catalog import Catalog
from slotbook.booking.ledger import BookingLedger
from slotbook.booking.lock_manager import LockManager

__all__ = ["BookingLedger", "LockManager", "Catalog"]
