"""
Provider timeline endpoints with Redis caching on the daily schedule.
"""

from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_api.core.logging import get_logger
from reservation_api.db.session import get_db
from reservation_api.schemas.reservation import (
    ConflictCheckResponse,
    ProviderScheduleResponse,
    ProviderStatsResponse,
    ReservationResponse,
)
from reservation_api.services.cache_service import (
    get_cached_schedule,
    get_schedule_version,
    set_cached_schedule,
)
from reservation_api.services.reservation_service import ReservationService
from reservation_api.services.service_factory import get_reservation_service

logger = get_logger(__name__)
router = APIRouter(prefix="/providers", tags=["Providers"])


@router.get("/{provider_id}/conflicts", response_model=ConflictCheckResponse)
async def check_provider_conflict(
    provider_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    exclude_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Preview whether a window is free. Advisory only: takes no locks, so a
    free answer can be outdated by the time a reservation is attempted.
    """
    conflict = await service.check_conflict(db, provider_id, start, end, exclude_id)
    return ConflictCheckResponse(
        provider_id=provider_id,
        start=start,
        end=end,
        conflict=conflict,
        available=not conflict,
    )


@router.get("/{provider_id}/schedule", response_model=ProviderScheduleResponse)
async def get_provider_schedule(
    provider_id: int,
    day: Optional[date] = Query(None, description="UTC calendar day, defaults to today"),
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    A provider's reservations for one day.
    Results are cached in Redis and invalidated on every write for the provider.
    """
    day = day or datetime.now(timezone.utc).date()

    # Generation is read before the query so a write committed meanwhile
    # leaves our result under an outdated key
    version = await get_schedule_version(provider_id)
    cached = await get_cached_schedule(provider_id, day, version)
    if cached is not None:
        logger.info("schedule_cache_hit", provider_id=provider_id, day=day.isoformat())
        return ProviderScheduleResponse(provider_id=provider_id, day=day, reservations=cached, cached=True)

    reservations = await service.list_provider_reservations(db, provider_id, day)
    payload = [ReservationResponse.model_validate(r).model_dump(mode="json") for r in reservations]

    await set_cached_schedule(provider_id, day, version, payload)

    return ProviderScheduleResponse(provider_id=provider_id, day=day, reservations=payload, cached=False)


@router.get("/{provider_id}/stats", response_model=ProviderStatsResponse)
async def get_provider_stats(
    provider_id: int,
    start: datetime = Query(..., description="Inclusive, by scheduled start"),
    end: datetime = Query(..., description="Exclusive"),
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
):
    """Outcome counts plus revenue and average price of completed reservations."""
    stats = await service.provider_stats(db, provider_id, start, end)
    return ProviderStatsResponse(provider_id=provider_id, start=start, end=end, **asdict(stats))
