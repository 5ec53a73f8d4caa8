from reservation_api.models.reservation import Reservation
from reservation_api.models.reservation_history import ReservationHistory
from reservation_api.models.provider_schedule import ProviderSchedule

__all__ = ["Reservation", "ReservationHistory", "ProviderSchedule"]
