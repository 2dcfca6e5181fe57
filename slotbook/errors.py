"""
Exception taxonomy for the booking engine.

Every error the core raises derives from BookingError and carries a
message that can be shown to the end user as-is. None of these are
retried internally; the caller decides what to do next.
"""


class BookingError(Exception):
    """Base class for all booking engine errors."""


class InvalidTimeInput(BookingError):
    """Malformed time-math input. Always a programming or input error."""


class InvalidInterval(InvalidTimeInput):
    """Raised when an interval's end is not after its start."""


class InvalidDuration(InvalidTimeInput):
    """Raised when a duration or grid step is not positive."""


class SlotLockedByOther(BookingError):
    """Another user holds a live lock on the requested slot."""


class SlotConflict(BookingError):
    """The ledger rejected a write because it would double-book a specialist."""


class NotFound(BookingError):
    """The targeted booking, service or specialist does not exist."""


class InvalidState(BookingError):
    """The operation is not allowed in the record's current lifecycle state."""


class ResourceInUse(BookingError):
    """A catalog record cannot be removed while active bookings reference it."""


class ServiceNotOffered(BookingError):
    """The specialist does not perform the requested service."""


class AuthenticationRequired(BookingError):
    """The step needs a signed-in user and none was supplied."""


class NotPermitted(BookingError):
    """The identity is signed in but may not act on this record."""


class StoreUnavailable(BookingError):
    """The durable store failed to serve a request."""
