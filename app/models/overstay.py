"""Storage overstay model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class OverstayStatus(str, enum.Enum):
    GRACE_PERIOD = "grace_period"
    PENDING_REVIEW = "pending_review"
    CHARGED = "charged"
    CHARGE_FAILED = "charge_failed"
    WAIVED = "waived"
    RESOLVED = "resolved"


# Records the sweep may still recompute
OPEN_OVERSTAY_STATUSES = (
    OverstayStatus.GRACE_PERIOD.value,
    OverstayStatus.PENDING_REVIEW.value,
    OverstayStatus.CHARGE_FAILED.value,
)


class OverstayRecord(Base):
    """Penalty assessment for a storage reservation kept past its end date"""
    __tablename__ = "overstay_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    storage_reservation_id = Column(
        UUID(as_uuid=True), ForeignKey("storage_reservations.id"), nullable=False, index=True
    )
    end_date = Column(Date, nullable=False)  # reservation end date the overstay is measured from

    days_overdue = Column(Integer, nullable=False)
    penalty_days = Column(Integer, nullable=False)
    daily_rate_cents = Column(Integer, nullable=False)
    penalty_multiplier = Column(Numeric(6, 3), nullable=False)
    penalty_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="CAD")

    status = Column(String(30), nullable=False, default=OverstayStatus.GRACE_PERIOD.value)
    resolution = Column(String(30))  # extended, charged, waived
    resolution_notes = Column(Text)
    external_charge_id = Column(String(255))

    detected_at = Column(DateTime, default=datetime.utcnow)
    resolved_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("storage_reservation_id", "end_date", name="uq_overstay_reservation_end_date"),
    )
