"""In-process store backed by dicts behind a single mutex."""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Hashable, Iterator, Optional

from slotbook.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """
    Thread-safe in-memory store.

    Every call holds the mutex for its full duration, so each one is atomic
    with respect to the others. ``exclusive`` sections are reentrant locks
    kept in a registry on the store itself, so any number of ledgers built
    over one instance serialize on the same section. Suitable for a single
    process; several worker processes need a backing whose sections span
    processes.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[Hashable, Any]] = {}
        self._mutex = threading.Lock()
        self._sections: dict[tuple[str, Hashable], threading.RLock] = defaultdict(threading.RLock)
        self._sections_mutex = threading.Lock()

    def _collection(self, name: str) -> dict[Hashable, Any]:
        return self._data.setdefault(name, {})

    def get(self, collection: str, key: Hashable) -> Optional[Any]:
        with self._mutex:
            return self._collection(collection).get(key)

    def put(self, collection: str, key: Hashable, value: Any) -> None:
        with self._mutex:
            self._collection(collection)[key] = value

    def delete(self, collection: str, key: Hashable) -> bool:
        with self._mutex:
            return self._collection(collection).pop(key, None) is not None

    def list_by_predicate(
        self, collection: str, predicate: Callable[[Any], bool]
    ) -> list[Any]:
        with self._mutex:
            values = list(self._collection(collection).values())
        return [v for v in values if predicate(v)]

    def compare_and_swap(
        self,
        collection: str,
        key: Hashable,
        expected: Optional[Any],
        new: Optional[Any],
    ) -> bool:
        with self._mutex:
            items = self._collection(collection)
            if items.get(key) != expected:
                return False
            if new is None:
                items.pop(key, None)
            else:
                items[key] = new
            return True

    @contextmanager
    def exclusive(self, collection: str, key: Hashable) -> Iterator[None]:
        with self._sections_mutex:
            section = self._sections[(collection, key)]
        with section:
            yield

    def reset(self) -> None:
        """Clear all collections. Used by test fixtures for isolation."""
        with self._mutex:
            self._data.clear()
