"""Kitchen and schedule models"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Kitchen(Base):
    """Bookable commercial kitchen"""
    __tablename__ = "kitchens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Pricing (minor units)
    hourly_rate_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")
    minimum_booking_hours = Column(Numeric(5, 2), nullable=False, default=1)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="kitchens")
    weekly_availability = relationship("WeeklyAvailability", back_populates="kitchen")
    date_overrides = relationship("DateOverride", back_populates="kitchen")
    date_blocks = relationship("DateBlock", back_populates="kitchen")
    storage_listings = relationship("StorageListing", back_populates="kitchen")
    equipment_listings = relationship("EquipmentListing", back_populates="kitchen")


class WeeklyAvailability(Base):
    """Recurring open hours for one weekday (0 = Sunday)"""
    __tablename__ = "weekly_availability"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("kitchen_id", "day_of_week", name="uq_weekly_availability_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_weekly_availability_day"),
        CheckConstraint("start_minute < end_minute", name="ck_weekly_availability_range"),
    )

    # Relationships
    kitchen = relationship("Kitchen", back_populates="weekly_availability")


class DateOverride(Base):
    """Replaces the weekly schedule for a single date"""
    __tablename__ = "date_overrides"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_minute = Column(Integer)  # null when closed all day
    end_minute = Column(Integer)
    is_closed = Column(Boolean, nullable=False, default=True)
    reason = Column(String(255))  # Holiday, Maintenance, etc.
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("kitchen_id", "date", name="uq_date_override_day"),
    )

    # Relationships
    kitchen = relationship("Kitchen", back_populates="date_overrides")


class DateBlock(Base):
    """Blocked interval inside one date's open hours"""
    __tablename__ = "date_blocks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kitchen_id = Column(UUID(as_uuid=True), ForeignKey("kitchens.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    reason = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("start_minute < end_minute", name="ck_date_block_range"),
    )

    # Relationships
    kitchen = relationship("Kitchen", back_populates="date_blocks")
