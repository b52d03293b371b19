"""Storage and equipment listing models"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class DurationUnit(str, enum.Enum):
    """Billing period of a storage listing"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EquipmentAvailability(str, enum.Enum):
    """Included equipment comes with the kitchen; rental equipment is booked and charged"""
    RENTAL = "rental"
    INCLUDED = "included"


class StorageListing(Base):
    """Rentable storage unit attached to a kitchen"""
    __tablename__ = "storage_listings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    storage_type = Column(String(50), default="dry")  # dry, cold, freezer

    # Pricing: base_price_cents per booking_duration_unit
    base_price_cents = Column(Integer, nullable=False)
    booking_duration_unit = Column(String(20), nullable=False, default=DurationUnit.DAILY.value)
    minimum_booking_duration = Column(Integer, nullable=False, default=1)  # in booking_duration_unit

    # Overstay policy overrides (null = tenant/platform default)
    overstay_grace_period_days = Column(Integer)
    overstay_penalty_multiplier = Column(Numeric(6, 3))
    overstay_max_penalty_days = Column(Integer)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    kitchen = relationship("Kitchen", back_populates="storage_listings")


class EquipmentListing(Base):
    """Equipment item attached to a kitchen"""
    __tablename__ = "equipment_listings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False, index=True)
    equipment_type = Column(String(100), nullable=False)  # mixer, oven, fryer, etc.
    availability_type = Column(String(20), nullable=False, default=EquipmentAvailability.RENTAL.value)

    # Flat session rate, charged once per kitchen booking regardless of duration
    session_rate_cents = Column(Integer, nullable=False, default=0)
    damage_deposit_cents = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    kitchen = relationship("Kitchen", back_populates="equipment_listings")
