"""
Durable store interface consumed by the engine.

The engine needs keyed get/put/delete, a predicate scan, a per-key atomic
compare-and-swap and a per-key exclusive section. Any backing that
honours those contracts (a mutex-guarded dict, a transactional key-value
database with row or advisory locks) can be plugged in.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, Hashable, Optional

SERVICES = "services"
SPECIALISTS = "specialists"
BOOKINGS = "bookings"
LOCKS = "locks"


class KeyValueStore(ABC):
    """Collections of values keyed by id."""

    @abstractmethod
    def get(self, collection: str, key: Hashable) -> Optional[Any]:
        """Return the stored value or None."""

    @abstractmethod
    def put(self, collection: str, key: Hashable, value: Any) -> None:
        """Insert or overwrite a value."""

    @abstractmethod
    def delete(self, collection: str, key: Hashable) -> bool:
        """Remove a value. Returns False if it was absent."""

    @abstractmethod
    def list_by_predicate(
        self, collection: str, predicate: Callable[[Any], bool]
    ) -> list[Any]:
        """Return every value in the collection for which predicate is true."""

    @abstractmethod
    def compare_and_swap(
        self,
        collection: str,
        key: Hashable,
        expected: Optional[Any],
        new: Optional[Any],
    ) -> bool:
        """
        Atomically replace ``expected`` with ``new`` under one key.

        ``expected=None`` means the key must be absent; ``new=None`` deletes
        the key. Returns False, changing nothing, when the current value is
        not equal to ``expected``.
        """

    @abstractmethod
    def exclusive(self, collection: str, key: Hashable) -> ContextManager[None]:
        """
        Hold the section named by ``(collection, key)`` for the ``with`` body.

        Every caller sharing this store is serialized on the same name,
        however many engines or ledgers sit on top of it. Re-entering a
        section already held by the current caller must not block.
        """
