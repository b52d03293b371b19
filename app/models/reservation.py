"""Kitchen, storage and equipment reservation models"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    Text,
    Index,
    CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class ReservationStatus(str, enum.Enum):
    """pending -> confirmed -> cancelled; cancelled is terminal"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class CheckoutStatus(str, enum.Enum):
    """Storage move-out: active -> checkout_requested -> completed; a denial returns to active"""
    ACTIVE = "active"
    CHECKOUT_REQUESTED = "checkout_requested"
    COMPLETED = "completed"


# Storage in these states is being emptied and accrues no overstay
CHECKOUT_IN_PROGRESS = (CheckoutStatus.CHECKOUT_REQUESTED.value, CheckoutStatus.COMPLETED.value)


class BookingType(str, enum.Enum):
    CHEF = "chef"
    MANAGER_BLOCKED = "manager_blocked"
    EXTERNAL = "external"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class Reservation(Base):
    """Kitchen time-slot reservation (parent booking)"""
    __tablename__ = "reservations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False)
    owner_id = Column(UUID(as_uuid=True), index=True)  # chef; null for manager blocks

    # Time window, minutes of day [start_minute, end_minute)
    booking_date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value)
    booking_type = Column(String(20), nullable=False, default=BookingType.CHEF.value)

    # Pricing (minor units)
    currency = Column(String(3), nullable=False, default="CAD")
    kitchen_subtotal_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    deposit_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)

    # Payment
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value)
    payment_session_token = Column(String(255), unique=True)

    # Included equipment listing ids, recorded for information only
    included_equipment = Column(JSON, default=list)

    notes = Column(Text)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_reservations_kitchen_date", "kitchen_id", "booking_date"),
        CheckConstraint("start_minute < end_minute", name="ck_reservation_range"),
    )


class StorageReservation(Base):
    """Storage date-range bundled under a kitchen reservation"""
    __tablename__ = "storage_reservations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    storage_listing_id = Column(UUID(as_uuid=True), ForeignKey("storage_listings.id"), nullable=False)
    parent_booking_id = Column(UUID(as_uuid=True), ForeignKey("reservations.id"), nullable=False, index=True)
    chef_id = Column(UUID(as_uuid=True))

    # [start_date, end_date)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value)
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value)

    base_price_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)

    checkout_status = Column(String(30), nullable=False, default=CheckoutStatus.ACTIVE.value, index=True)
    checkout_requested_at = Column(DateTime)
    checkout_completed_at = Column(DateTime)
    checkout_notes = Column(Text)
    checkout_denial_reason = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_storage_reservations_listing_dates", "storage_listing_id", "start_date", "end_date"),
        CheckConstraint("start_date < end_date", name="ck_storage_reservation_range"),
    )


class EquipmentReservation(Base):
    """Rental equipment session bundled under a kitchen reservation"""
    __tablename__ = "equipment_reservations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    equipment_listing_id = Column(UUID(as_uuid=True), ForeignKey("equipment_listings.id"), nullable=False)
    parent_booking_id = Column(UUID(as_uuid=True), ForeignKey("reservations.id"), nullable=False, index=True)
    chef_id = Column(UUID(as_uuid=True))

    # [start_date, end_date)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value)
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value)

    session_rate_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    damage_deposit_cents = Column(Integer, nullable=False, default=0)  # refundable, outside fee base

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_equipment_reservations_listing_dates", "equipment_listing_id", "start_date", "end_date"),
        CheckConstraint("start_date < end_date", name="ck_equipment_reservation_range"),
    )
