"""Storage extension model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class ExtensionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PendingExtension(Base):
    """Requested storage extension awaiting payment"""
    __tablename__ = "pending_extensions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    storage_reservation_id = Column(
        UUID(as_uuid=True), ForeignKey("storage_reservations.id"), nullable=False
    )
    previous_end_date = Column(Date, nullable=False)
    new_end_date = Column(Date, nullable=False)
    extension_days = Column(Integer, nullable=False)

    base_price_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    computed_price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")

    external_payment_session_id = Column(String(255))
    status = Column(String(20), nullable=False, default=ExtensionStatus.PENDING.value)

    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # At most one unresolved extension per storage reservation
        Index(
            "uq_pending_extension_per_reservation",
            "storage_reservation_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )
