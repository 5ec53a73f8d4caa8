"""
Permissive directory implementations.

Used when the surrounding system does not wire real lookups: every provider
and customer is accepted and the catalog knows nothing, so the request's own
service data is trusted.
"""

from typing import Dict, Iterable, Optional

from reservation_api.services.interfaces.directories import (
    CustomerDirectory,
    ProviderDirectory,
    ServiceCatalog,
    ServiceDetails,
)


class OpenProviderDirectory(ProviderDirectory):
    """Every provider is active."""

    async def is_active(self, provider_id: int) -> bool:
        return True


class OpenCustomerDirectory(CustomerDirectory):
    """Every customer id is accepted."""

    async def exists(self, customer_id: int) -> bool:
        return True


class EmptyServiceCatalog(ServiceCatalog):
    async def get_service(self, service_id: int) -> Optional[ServiceDetails]:
        return None


class StaticServiceCatalog(ServiceCatalog):
    """In-memory catalog, e.g. loaded from configuration."""

    def __init__(self, services: Iterable[ServiceDetails]):
        self._services: Dict[int, ServiceDetails] = {s.service_id: s for s in services}

    async def get_service(self, service_id: int) -> Optional[ServiceDetails]:
        return self._services.get(service_id)


class StaticProviderDirectory(ProviderDirectory):
    """Only the listed provider ids are active."""

    def __init__(self, active_provider_ids: Iterable[int]):
        self._active = frozenset(active_provider_ids)

    async def is_active(self, provider_id: int) -> bool:
        return provider_id in self._active
