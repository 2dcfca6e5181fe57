"""Service and specialist records, with deletion guarded by active bookings."""

import logging
from typing import ContextManager, Optional

from slotbook.booking.ledger import BookingLedger
from slotbook.errors import NotFound, ResourceInUse
from slotbook.schemas.catalog_schema import Service, Specialist
from slotbook.store.base import SERVICES, SPECIALISTS, KeyValueStore

logger = logging.getLogger(__name__)


class Catalog:
    """Reads and maintains the services and specialists the engine schedules."""

    def __init__(self, store: KeyValueStore, ledger: BookingLedger) -> None:
        self._store = store
        self._ledger = ledger

    def hold_service(self, service_id: str) -> ContextManager[None]:
        """Exclusive section over one service. Bookings for it are committed inside it."""
        return self._store.exclusive(SERVICES, service_id)

    # --- services ---

    def get_service(self, service_id: str) -> Optional[Service]:
        return self._store.get(SERVICES, service_id)

    def require_service(self, service_id: str) -> Service:
        service = self.get_service(service_id)
        if service is None:
            raise NotFound(f"Service {service_id} not found.")
        return service

    def list_services(self) -> list[Service]:
        return sorted(self._store.list_by_predicate(SERVICES, lambda s: True), key=lambda s: s.id)

    def save_service(self, service: Service) -> Service:
        self._store.put(SERVICES, service.id, service)
        logger.info("Service %s saved", service.id)
        return service

    def delete_service(self, service_id: str) -> None:
        """
        Raises:
            NotFound: No such service.
            ResourceInUse: Active bookings still reference it.
        """
        with self.hold_service(service_id):
            self.require_service(service_id)
            if self._ledger.has_active_for_service(service_id):
                raise ResourceInUse("Cannot delete a service that has active bookings.")
            self._store.delete(SERVICES, service_id)
        logger.info("Service %s deleted", service_id)

    # --- specialists ---

    def get_specialist(self, specialist_id: str) -> Optional[Specialist]:
        return self._store.get(SPECIALISTS, specialist_id)

    def require_specialist(self, specialist_id: str) -> Specialist:
        specialist = self.get_specialist(specialist_id)
        if specialist is None:
            raise NotFound(f"Specialist {specialist_id} not found.")
        return specialist

    def list_specialists(self) -> list[Specialist]:
        return sorted(self._store.list_by_predicate(SPECIALISTS, lambda s: True), key=lambda s: s.id)

    def specialists_for_service(self, service_id: str) -> list[Specialist]:
        """Specialists able to perform the given service."""
        return sorted(
            self._store.list_by_predicate(SPECIALISTS, lambda s: s.offers(service_id)),
            key=lambda s: s.id,
        )

    def save_specialist(self, specialist: Specialist) -> Specialist:
        self._store.put(SPECIALISTS, specialist.id, specialist)
        logger.info("Specialist %s saved", specialist.id)
        return specialist

    def delete_specialist(self, specialist_id: str) -> None:
        """
        Raises:
            NotFound: No such specialist.
            ResourceInUse: Active bookings still reference them.
        """
        with self._ledger.hold_schedule(specialist_id):
            self.require_specialist(specialist_id)
            if self._ledger.has_active_for_specialist(specialist_id):
                raise ResourceInUse("Cannot delete a specialist who has active bookings.")
            self._store.delete(SPECIALISTS, specialist_id)
        logger.info("Specialist %s deleted", specialist_id)
