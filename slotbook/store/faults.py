"""
Fault-injecting store decorator for demos and resilience tests.

Wraps any KeyValueStore and fails a configurable share of write calls
with StoreUnavailable before they reach the wrapped store, so a failed
call never leaves partial state behind. Off unless a rate above zero
is configured.
"""

import logging
import random
from typing import Any, Callable, ContextManager, Hashable, Optional

from slotbook.errors import StoreUnavailable
from slotbook.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class FaultInjectingStore(KeyValueStore):
    """Delegates to ``inner`` but randomly refuses writes."""

    def __init__(self, inner: KeyValueStore, failure_rate: float, seed: Optional[int] = None) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be between 0.0 and 1.0, got {failure_rate}")
        self._inner = inner
        self._failure_rate = failure_rate
        self._random = random.Random(seed)

    def _maybe_fail(self, operation: str, collection: str) -> None:
        if self._failure_rate and self._random.random() < self._failure_rate:
            logger.warning("Injected store failure on %s(%s)", operation, collection)
            raise StoreUnavailable("Network error: request failed. Please try again.")

    def get(self, collection: str, key: Hashable) -> Optional[Any]:
        return self._inner.get(collection, key)

    def list_by_predicate(
        self, collection: str, predicate: Callable[[Any], bool]
    ) -> list[Any]:
        return self._inner.list_by_predicate(collection, predicate)

    def put(self, collection: str, key: Hashable, value: Any) -> None:
        self._maybe_fail("put", collection)
        self._inner.put(collection, key, value)

    def delete(self, collection: str, key: Hashable) -> bool:
        self._maybe_fail("delete", collection)
        return self._inner.delete(collection, key)

    def compare_and_swap(
        self,
        collection: str,
        key: Hashable,
        expected: Optional[Any],
        new: Optional[Any],
    ) -> bool:
        self._maybe_fail("compare_and_swap", collection)
        return self._inner.compare_and_swap(collection, key, expected, new)

    def exclusive(self, collection: str, key: Hashable) -> ContextManager[None]:
        return self._inner.exclusive(collection, key)
