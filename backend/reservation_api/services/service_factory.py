"""
Reservation service factory.
Wires the service with its collaborators and the configured policy.
"""

from typing import Optional

from reservation_api.services.interfaces import (
    EmptyServiceCatalog,
    OpenCustomerDirectory,
    OpenProviderDirectory,
)
from reservation_api.services.reservation_service import ReservationPolicy, ReservationService


def build_reservation_service() -> ReservationService:
    """
    Build the reservation service.

    Directory lookups default to the permissive implementations; a deployment
    that owns provider, catalog or customer data overrides the
    `get_reservation_service` dependency with its own wiring.
    """
    return ReservationService(
        providers=OpenProviderDirectory(),
        catalog=EmptyServiceCatalog(),
        customers=OpenCustomerDirectory(),
        policy=ReservationPolicy.from_settings(),
    )


# Singleton instance
_service: Optional[ReservationService] = None


def get_reservation_service() -> ReservationService:
    """Get reservation service singleton. Usable as a FastAPI dependency."""
    global _service
    if _service is None:
        _service = build_reservation_service()
    return _service
