"""Booking schemas"""

from datetime import date, datetime
from typing import Annotated, Optional, List
from uuid import UUID
from pydantic import AfterValidator, BaseModel, Field

from app.engine.availability import parse_time


def _check_time(value: str) -> str:
    parse_time(value)
    return value


# "HH:MM" time of day
TimeOfDay = Annotated[str, AfterValidator(_check_time)]


class StorageItemRequest(BaseModel):
    """Storage rental for [start_date, end_date)"""
    listing_id: UUID
    start_date: date
    end_date: date


class EquipmentItemRequest(BaseModel):
    listing_id: UUID


class BookingCreate(BaseModel):
    """Kitchen window plus bundled storage and equipment"""
    chef_id: UUID
    kitchen_id: UUID
    date: date
    start_time: TimeOfDay = Field(..., examples=["10:00"])
    end_time: TimeOfDay = Field(..., examples=["12:00"])
    storage_items: List[StorageItemRequest] = []
    equipment_items: List[EquipmentItemRequest] = []


class ManagerBlockCreate(BaseModel):
    """Manager-held kitchen window with no chef or payment"""
    date: date
    start_time: TimeOfDay
    end_time: TimeOfDay
    reason: Optional[str] = None


class PriceBreakdownResponse(BaseModel):
    kitchen_subtotal: int
    storage_subtotals: List[int]
    equipment_subtotals: List[int]
    service_fees: int
    deposits: int
    total: int
    currency: str


class BookingCreateResponse(BaseModel):
    booking_id: UUID
    status: str
    price_breakdown: PriceBreakdownResponse
    payment_session_token: Optional[str]
    included_equipment_ids: List[UUID] = []


class StorageReservationResponse(BaseModel):
    id: UUID
    storage_listing_id: UUID
    parent_booking_id: UUID
    start_date: date
    end_date: date
    status: str
    payment_status: str
    base_price_cents: int
    service_fee_cents: int
    checkout_status: str
    checkout_requested_at: Optional[datetime] = None
    checkout_completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EquipmentReservationResponse(BaseModel):
    id: UUID
    equipment_listing_id: UUID
    parent_booking_id: UUID
    start_date: date
    end_date: date
    status: str
    payment_status: str
    session_rate_cents: int
    service_fee_cents: int
    damage_deposit_cents: int

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    """Kitchen reservation with its sub-reservations"""
    id: UUID
    tenant_id: UUID
    kitchen_id: UUID
    owner_id: Optional[UUID]
    booking_date: date
    start_time: str
    end_time: str
    status: str
    booking_type: str
    payment_status: str
    currency: str
    kitchen_subtotal_cents: int
    service_fee_cents: int
    deposit_cents: int
    total_cents: int
    included_equipment: List[UUID] = []
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    created_at: datetime
    storage_reservations: List[StorageReservationResponse] = []
    equipment_reservations: List[EquipmentReservationResponse] = []


class CancelRequest(BaseModel):
    reason: Optional[str] = None
    requested_refund_cents: Optional[int] = Field(None, ge=0)


class CancellationResponse(BaseModel):
    booking_id: UUID
    status: str
    cancelled_storage_ids: List[UUID]
    cancelled_equipment_ids: List[UUID]
    refundable_cents: int


class RefundRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)


class RefundResponse(BaseModel):
    booking_id: UUID
    refund_id: str
    amount_cents: int
    refunded_total_cents: int
    remaining_refundable_cents: int
    payment_status: str
