"""Tenant management API endpoints"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.tenant import Tenant, KitchenAccessGrant
from app.schemas.tenant import (
    TenantCreate,
    TenantUpdate,
    TenantResponse,
    AccessGrantCreate,
    AccessGrantResponse,
)

router = APIRouter()


async def _get_tenant(db: AsyncSession, tenant_id: UUID) -> Tenant:
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalar_one_or_none()

    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")

    return tenant


@router.get("", response_model=List[TenantResponse])
async def list_tenants(
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
):
    """List active tenants"""
    result = await db.execute(
        select(Tenant)
        .where(Tenant.is_active.is_(True))
        .order_by(Tenant.name)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new tenant (location operator)"""
    tenant = Tenant(**tenant_data.model_dump())
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)

    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get tenant details"""
    return await _get_tenant(db, tenant_id)


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: UUID,
    tenant_data: TenantUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update tenant, including its overstay policy overrides"""
    tenant = await _get_tenant(db, tenant_id)

    for field, value in tenant_data.model_dump(exclude_unset=True).items():
        setattr(tenant, field, value)

    await db.commit()
    await db.refresh(tenant)

    return tenant


@router.post(
    "/{tenant_id}/access-grants",
    response_model=AccessGrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_access(
    tenant_id: UUID,
    grant_data: AccessGrantCreate,
    db: AsyncSession = Depends(get_db),
):
    """Record that a chef may book this tenant's kitchens"""
    await _get_tenant(db, tenant_id)

    result = await db.execute(
        select(KitchenAccessGrant).where(
            KitchenAccessGrant.tenant_id == tenant_id,
            KitchenAccessGrant.chef_id == grant_data.chef_id,
        )
    )
    grant = result.scalar_one_or_none()
    if grant:
        return grant

    grant = KitchenAccessGrant(tenant_id=tenant_id, chef_id=grant_data.chef_id)
    db.add(grant)
    await db.commit()
    await db.refresh(grant)

    return grant


@router.delete("/{tenant_id}/access-grants/{chef_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_access(
    tenant_id: UUID,
    chef_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Revoke a chef's booking access"""
    result = await db.execute(
        select(KitchenAccessGrant).where(
            KitchenAccessGrant.tenant_id == tenant_id,
            KitchenAccessGrant.chef_id == chef_id,
        )
    )
    grant = result.scalar_one_or_none()
    if not grant:
        raise HTTPException(status_code=404, detail="Access grant not found")

    await db.delete(grant)
    await db.commit()
