"""Tenant-related models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Tenant(Base):
    """Location operator owning one or more kitchens"""
    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    timezone = Column(String(50), default="America/St_Johns")
    is_active = Column(Boolean, default=True)

    # Overstay policy overrides (null = platform default)
    overstay_grace_period_days = Column(Integer)
    overstay_penalty_multiplier = Column(Numeric(6, 3))
    overstay_max_penalty_days = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    kitchens = relationship("Kitchen", back_populates="tenant")
    access_grants = relationship("KitchenAccessGrant", back_populates="tenant")


class KitchenAccessGrant(Base):
    """Chef approved to book any kitchen of a tenant (written by the approval workflow)"""
    __tablename__ = "kitchen_access_grants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    chef_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    granted_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "chef_id", name="uq_access_grant_chef"),
    )

    # Relationships
    tenant = relationship("Tenant", back_populates="access_grants")
