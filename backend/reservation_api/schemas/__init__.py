from reservation_api.schemas.reservation import (
    ActorIn,
    CancelRequest,
    ConflictCheckResponse,
    HistoryResponse,
    PaymentUpdateRequest,
    ProviderScheduleResponse,
    ProviderStatsResponse,
    RepriceRequest,
    RescheduleRequest,
    ReservationCreate,
    ReservationResponse,
    StatusChangeRequest,
    TransitionsResponse,
)

__all__ = [
    "ActorIn", "ReservationCreate", "StatusChangeRequest", "RescheduleRequest",
    "CancelRequest", "RepriceRequest", "PaymentUpdateRequest",
    "ReservationResponse", "HistoryResponse", "ConflictCheckResponse",
    "TransitionsResponse", "ProviderScheduleResponse", "ProviderStatsResponse",
]
