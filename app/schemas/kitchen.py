"""Kitchen, schedule and listing schemas"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.schemas.booking import TimeOfDay


class KitchenCreate(BaseModel):
    name: str
    hourly_rate_cents: int = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    minimum_booking_hours: Decimal = Field(Decimal("1"), ge=0)


class KitchenResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    hourly_rate_cents: int
    currency: str
    minimum_booking_hours: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class WeeklyAvailabilityEntry(BaseModel):
    """Open hours for one weekday (0 = Sunday)"""
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: TimeOfDay
    end_time: TimeOfDay
    is_available: bool = True


class WeeklyAvailabilityUpdate(BaseModel):
    days: List[WeeklyAvailabilityEntry]


class DateOverrideUpsert(BaseModel):
    """Closed all day unless hours are given with is_closed false"""
    is_closed: bool = True
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    reason: Optional[str] = None


class DateOverrideResponse(BaseModel):
    kitchen_id: UUID
    date: date
    is_closed: bool
    start_time: Optional[str]
    end_time: Optional[str]
    reason: Optional[str]


class DateBlockCreate(BaseModel):
    date: date
    start_time: TimeOfDay
    end_time: TimeOfDay
    reason: Optional[str] = None


class DateBlockResponse(BaseModel):
    id: UUID
    kitchen_id: UUID
    date: date
    start_time: str
    end_time: str
    reason: Optional[str]


class TimeRangeResponse(BaseModel):
    start_time: str
    end_time: str


class AvailabilityResponse(BaseModel):
    kitchen_id: UUID
    date: date
    open_ranges: List[TimeRangeResponse]


class SlotsResponse(BaseModel):
    kitchen_id: UUID
    date: date
    granularity_minutes: int
    slots: List[str]


class StorageListingCreate(BaseModel):
    name: str
    storage_type: str = "dry"
    base_price_cents: int = Field(..., ge=0)
    booking_duration_unit: str = Field("daily", pattern="^(daily|weekly|monthly)$")
    minimum_booking_duration: int = Field(1, ge=1)
    overstay_grace_period_days: Optional[int] = Field(None, ge=0)
    overstay_penalty_multiplier: Optional[Decimal] = Field(None, ge=0)
    overstay_max_penalty_days: Optional[int] = Field(None, ge=0)


class StorageListingResponse(BaseModel):
    id: UUID
    kitchen_id: UUID
    name: str
    storage_type: Optional[str]
    base_price_cents: int
    booking_duration_unit: str
    minimum_booking_duration: int
    overstay_grace_period_days: Optional[int]
    overstay_penalty_multiplier: Optional[Decimal]
    overstay_max_penalty_days: Optional[int]
    is_active: bool

    class Config:
        from_attributes = True


class EquipmentListingCreate(BaseModel):
    equipment_type: str
    availability_type: str = Field("rental", pattern="^(rental|included)$")
    session_rate_cents: int = Field(0, ge=0)
    damage_deposit_cents: int = Field(0, ge=0)


class EquipmentListingResponse(BaseModel):
    id: UUID
    kitchen_id: UUID
    equipment_type: str
    availability_type: str
    session_rate_cents: int
    damage_deposit_cents: int
    is_active: bool

    class Config:
        from_attributes = True
