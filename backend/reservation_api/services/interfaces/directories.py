"""
Read-only lookups the reservation service depends on.

Providers, the service catalog and customers are owned by other parts of the
system. The reservation service receives implementations of these interfaces
at construction time; the store never calls them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ServiceDetails:
    """What the catalog knows about a bookable service."""

    service_id: int
    name: str
    duration_minutes: int
    default_price: Decimal
    category: Optional[str] = None
    is_active: bool = True


class ProviderDirectory(ABC):
    @abstractmethod
    async def is_active(self, provider_id: int) -> bool:
        """
        Check whether a provider exists and accepts reservations.

        Args:
            provider_id: Provider to look up

        Returns:
            True if reservations may be placed with this provider
        """
        pass


class ServiceCatalog(ABC):
    @abstractmethod
    async def get_service(self, service_id: int) -> Optional[ServiceDetails]:
        """
        Look up a catalog service.

        Returns:
            ServiceDetails, or None when the catalog does not know the id
        """
        pass


class CustomerDirectory(ABC):
    @abstractmethod
    async def exists(self, customer_id: int) -> bool:
        """Check whether a registered customer with this id exists."""
        pass
