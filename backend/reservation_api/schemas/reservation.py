"""
Pydantic schemas for reservation request/response validation.

Request schemas only check shapes and types; business rules (notice period,
guest contact info, price ranges) are enforced by the reservation service so
the same errors apply to every caller.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from reservation_api.domain.enums import ActorRole, ChangeType, PaymentStatus, ReservationStatus
from reservation_api.services.reservation_service import Actor, ReserveRequest


class ActorIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ActorRole = ActorRole.SYSTEM
    id: Optional[int] = None

    def to_actor(self) -> Actor:
        return Actor(role=self.role, id=self.id)


class ReservationCreate(BaseModel):
    provider_id: int
    slot_id: int
    scheduled_start: datetime
    scheduled_end: datetime
    service_name: Optional[str] = Field(None, max_length=255)
    service_price: Optional[Decimal] = None
    discount_amount: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    currency: Optional[str] = Field(None, max_length=3)
    tip_amount: Decimal = Decimal("0")
    service_id: Optional[int] = None
    service_category: Optional[str] = Field(None, max_length=100)
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)
    special_requests: Optional[str] = Field(None, max_length=2000)
    booking_source: str = Field("web_app", max_length=30)
    actor: Optional[ActorIn] = None

    def to_request(self) -> ReserveRequest:
        return ReserveRequest(**self.model_dump(exclude={"actor"}))


class StatusChangeRequest(BaseModel):
    # Plain string so unknown values reach the state machine (400 INVALID_STATUS)
    status: str
    actor: ActorIn = ActorIn()
    reason: Optional[str] = Field(None, max_length=1000)


class RescheduleRequest(BaseModel):
    scheduled_start: datetime
    scheduled_end: datetime
    actor: ActorIn = ActorIn()
    reason: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    actor: ActorIn = ActorIn()
    reason: Optional[str] = Field(None, max_length=1000)
    fee: Decimal = Decimal("0")


class RepriceRequest(BaseModel):
    actor: ActorIn = ActorIn()
    service_price: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tip_amount: Optional[Decimal] = None
    reason: Optional[str] = Field(None, max_length=1000)


class PaymentUpdateRequest(BaseModel):
    payment_status: str
    actor: ActorIn = ActorIn()
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=255)


class ReservationResponse(BaseModel):
    id: int
    uuid: str
    reference: str
    provider_id: int
    customer_id: Optional[int]
    customer_name: Optional[str]
    customer_email: Optional[str]
    customer_phone: Optional[str]
    slot_id: int
    service_id: Optional[int]
    service_name: str
    service_category: Optional[str]
    duration_minutes: int
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: Optional[datetime]
    actual_end: Optional[datetime]
    status: ReservationStatus
    service_price: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    sub_total: Decimal
    tax_amount: Decimal
    total_price: Decimal
    tip_amount: Decimal
    currency: str
    payment_status: PaymentStatus
    payment_method: Optional[str]
    payment_reference: Optional[str]
    paid_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancelled_by_role: Optional[ActorRole]
    cancelled_by_id: Optional[int]
    cancellation_reason: Optional[str]
    cancellation_fee: Decimal
    notes: Optional[str]
    special_requests: Optional[str]
    booking_source: str
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class HistoryResponse(BaseModel):
    id: int
    reservation_id: int
    change_type: ChangeType
    old_values: Dict[str, Any]
    new_values: Dict[str, Any]
    actor_role: Optional[ActorRole]
    actor_id: Optional[int]
    reason: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class ConflictCheckResponse(BaseModel):
    provider_id: int
    start: datetime
    end: datetime
    conflict: bool
    available: bool


class TransitionsResponse(BaseModel):
    reservation_id: int
    current_status: ReservationStatus
    allowed: List[ReservationStatus]
    is_terminal: bool


class ProviderScheduleResponse(BaseModel):
    provider_id: int
    day: date
    reservations: List[ReservationResponse]
    cached: bool = False


class ProviderStatsResponse(BaseModel):
    provider_id: int
    start: datetime
    end: datetime
    total: int
    completed: int
    cancelled: int
    no_show: int
    total_revenue: Decimal
    average_price: Decimal
