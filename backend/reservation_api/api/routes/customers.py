"""
Customer-facing reservation listing.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_api.db.session import get_db
from reservation_api.schemas.reservation import ReservationResponse
from reservation_api.services.reservation_service import MAX_PAGE_SIZE, ReservationService
from reservation_api.services.service_factory import get_reservation_service

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("/{customer_id}/reservations", response_model=List[ReservationResponse])
async def list_customer_reservations(
    customer_id: int,
    status: Optional[List[str]] = Query(None, description="Repeatable; 'cancelled' matches both variants"),
    payment_status: Optional[str] = Query(None),
    start_from: Optional[datetime] = Query(None),
    start_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """A customer's reservations, most recent appointment first."""
    return await service.list_customer_reservations(
        db,
        customer_id,
        statuses=status,
        payment_status=payment_status,
        start_from=start_from,
        start_to=start_to,
        limit=limit,
        offset=offset,
    )
