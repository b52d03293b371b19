"""Payment transaction model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class PaymentTransaction(Base):
    """Captured payment for a booking, as reported by the payment collaborator"""
    __tablename__ = "payment_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("reservations.id"), nullable=False, unique=True)
    external_transaction_id = Column(String(255), nullable=False)

    # Minor units. manager_revenue = amount - platform_fee - processor_fee
    amount_cents = Column(Integer, nullable=False)
    platform_fee_cents = Column(Integer, nullable=False, default=0)
    processor_fee_cents = Column(Integer, nullable=False, default=0)
    manager_revenue_cents = Column(Integer, nullable=False)
    refunded_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")

    status = Column(String(30), nullable=False, default="succeeded")  # succeeded, partially_refunded, refunded

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
