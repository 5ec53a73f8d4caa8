"""
Reservation endpoints.

Thin adapter: each handler maps the body to a reservation service call.
Errors raised by the service are rendered by the ReservationError handler in
main.py.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_api.db.session import get_db
from reservation_api.domain.state_machine import is_terminal
from reservation_api.schemas.reservation import (
    CancelRequest,
    HistoryResponse,
    PaymentUpdateRequest,
    RepriceRequest,
    RescheduleRequest,
    ReservationCreate,
    ReservationResponse,
    StatusChangeRequest,
    TransitionsResponse,
)
from reservation_api.services.reservation_service import ReservationService
from reservation_api.services.service_factory import get_reservation_service

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    data: ReservationCreate,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Reserve a time slot with a provider.

    The window is checked against the provider's active reservations under a
    provider-level lock; an overlap returns 409 SLOT_CONFLICT.
    """
    actor = data.actor.to_actor() if data.actor else None
    return await service.reserve(db, data.to_request(), actor)


@router.get("/by-reference/{reference}", response_model=ReservationResponse)
async def get_reservation_by_reference(
    reference: str,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.get_by_reference(db, reference)


@router.get("/by-uuid/{reservation_uuid}", response_model=ReservationResponse)
async def get_reservation_by_uuid(
    reservation_uuid: str,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.get_by_uuid(db, reservation_uuid)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.get_reservation(db, reservation_id)


@router.post("/{reservation_id}/status", response_model=ReservationResponse)
async def change_reservation_status(
    reservation_id: int,
    data: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """Apply a lifecycle transition. Illegal transitions return 409 with the allowed set."""
    return await service.change_status(db, reservation_id, data.status, data.actor.to_actor(), data.reason)


@router.get("/{reservation_id}/transitions", response_model=TransitionsResponse)
async def get_allowed_transitions(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    reservation = await service.get_reservation(db, reservation_id)
    allowed = await service.allowed_transitions(db, reservation_id)
    return TransitionsResponse(
        reservation_id=reservation.id,
        current_status=reservation.status,
        allowed=list(allowed),
        is_terminal=is_terminal(reservation.status),
    )


@router.post("/{reservation_id}/reschedule", response_model=ReservationResponse)
async def reschedule_reservation(
    reservation_id: int,
    data: RescheduleRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.reschedule(
        db, reservation_id, data.scheduled_start, data.scheduled_end, data.actor.to_actor(), data.reason
    )


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: int,
    data: CancelRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """Cancel a pending or confirmed reservation. Other statuses return 409."""
    return await service.cancel(db, reservation_id, data.actor.to_actor(), data.reason, data.fee)


@router.post("/{reservation_id}/reprice", response_model=ReservationResponse)
async def reprice_reservation(
    reservation_id: int,
    data: RepriceRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.reprice(
        db,
        reservation_id,
        data.actor.to_actor(),
        service_price=data.service_price,
        discount_amount=data.discount_amount,
        tax_rate=data.tax_rate,
        tip_amount=data.tip_amount,
        reason=data.reason,
    )


@router.post("/{reservation_id}/payment", response_model=ReservationResponse)
async def update_payment(
    reservation_id: int,
    data: PaymentUpdateRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.update_payment_status(
        db,
        reservation_id,
        data.payment_status,
        data.actor.to_actor(),
        payment_method=data.payment_method,
        payment_reference=data.payment_reference,
    )


@router.get("/{reservation_id}/history", response_model=list[HistoryResponse])
async def get_reservation_history(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """Audit trail, newest first."""
    return await service.get_history(db, reservation_id)
