"""Storage extension and overstay schemas"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field


class ExtensionCreate(BaseModel):
    new_end_date: date


class ExtensionResponse(BaseModel):
    id: UUID
    storage_reservation_id: UUID
    previous_end_date: date
    new_end_date: date
    extension_days: int
    base_price_cents: int
    service_fee_cents: int
    computed_price_cents: int
    currency: str
    external_payment_session_id: Optional[str]
    status: str
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class OverstayRecordResponse(BaseModel):
    id: UUID
    storage_reservation_id: UUID
    end_date: date
    days_overdue: int
    penalty_days: int
    daily_rate_cents: int
    penalty_multiplier: Decimal
    penalty_cents: int
    currency: str
    status: str
    resolution: Optional[str]
    resolution_notes: Optional[str]
    external_charge_id: Optional[str]
    detected_at: datetime
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True


class SweepResponse(BaseModel):
    today: date
    records: List[OverstayRecordResponse]


class OverstayChargeRequest(BaseModel):
    """Payment-processor customer to charge; defaults to the chef id"""
    customer_ref: Optional[str] = None


class OverstayWaiveRequest(BaseModel):
    notes: Optional[str] = None


class CheckoutCreate(BaseModel):
    """Chef's move-out report"""
    chef_id: Optional[UUID] = None
    notes: Optional[str] = None


class CheckoutApproval(BaseModel):
    notes: Optional[str] = None


class CheckoutDenial(BaseModel):
    reason: str = Field(..., min_length=1)
