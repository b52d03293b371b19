"""Tenant schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    """Create tenant request"""
    name: str
    timezone: str = "America/St_Johns"
    overstay_grace_period_days: Optional[int] = Field(None, ge=0)
    overstay_penalty_multiplier: Optional[Decimal] = Field(None, ge=0)
    overstay_max_penalty_days: Optional[int] = Field(None, ge=0)


class TenantUpdate(BaseModel):
    """Update tenant request"""
    name: Optional[str] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None
    overstay_grace_period_days: Optional[int] = Field(None, ge=0)
    overstay_penalty_multiplier: Optional[Decimal] = Field(None, ge=0)
    overstay_max_penalty_days: Optional[int] = Field(None, ge=0)


class TenantResponse(BaseModel):
    """Tenant response"""
    id: UUID
    name: str
    timezone: str
    is_active: bool
    overstay_grace_period_days: Optional[int]
    overstay_penalty_multiplier: Optional[Decimal]
    overstay_max_penalty_days: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccessGrantCreate(BaseModel):
    """Chef approved by the application workflow"""
    chef_id: UUID


class AccessGrantResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    chef_id: UUID
    granted_at: datetime

    class Config:
        from_attributes = True
