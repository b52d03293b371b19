"""Storage extension, checkout and overstay API endpoints"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_payment_provider, get_notifier
from app.collaborators.notifications import Notifier
from app.collaborators.payments import PaymentProvider
from app.database import get_db
from app.engine import checkout, extensions, overstay
from app.schemas.booking import StorageReservationResponse
from app.schemas.payment import CapturedPayment
from app.schemas.storage import (
    CheckoutApproval,
    CheckoutCreate,
    CheckoutDenial,
    ExtensionCreate,
    ExtensionResponse,
    OverstayChargeRequest,
    OverstayRecordResponse,
    OverstayWaiveRequest,
    SweepResponse,
)

router = APIRouter()


@router.post(
    "/storage-reservations/{storage_reservation_id}/extensions",
    response_model=ExtensionResponse,
    status_code=201,
)
async def request_extension(
    tenant_id: UUID,
    storage_reservation_id: UUID,
    extension_data: ExtensionCreate,
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Request a paid extension of a storage reservation"""
    return await extensions.request_extension(
        db, tenant_id, storage_reservation_id, extension_data.new_end_date, payments
    )


@router.post("/extensions/{extension_id}/payment-confirmation", response_model=ExtensionResponse)
async def confirm_extension(
    tenant_id: UUID,
    extension_id: UUID,
    payment: CapturedPayment,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Extension paid: move the storage end date"""
    return await extensions.complete_extension(db, tenant_id, extension_id, payment, notifier)


@router.post("/extensions/{extension_id}/payment-failure", response_model=ExtensionResponse)
async def extension_payment_failed(
    tenant_id: UUID,
    extension_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Extension payment failed"""
    return await extensions.fail_extension(db, tenant_id, extension_id)


@router.post(
    "/storage-reservations/{storage_reservation_id}/checkout",
    response_model=StorageReservationResponse,
)
async def request_checkout(
    tenant_id: UUID,
    storage_reservation_id: UUID,
    checkout_data: CheckoutCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Chef has emptied the unit and asks the manager to confirm"""
    return await checkout.request_checkout(
        db,
        tenant_id,
        storage_reservation_id,
        chef_id=checkout_data.chef_id,
        notes=checkout_data.notes,
        notifier=notifier,
    )


@router.post(
    "/storage-reservations/{storage_reservation_id}/checkout/approve",
    response_model=StorageReservationResponse,
)
async def approve_checkout(
    tenant_id: UUID,
    storage_reservation_id: UUID,
    approval_data: CheckoutApproval,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Manager confirms the unit is empty"""
    return await checkout.approve_checkout(
        db, tenant_id, storage_reservation_id, notes=approval_data.notes, notifier=notifier
    )


@router.post(
    "/storage-reservations/{storage_reservation_id}/checkout/deny",
    response_model=StorageReservationResponse,
)
async def deny_checkout(
    tenant_id: UUID,
    storage_reservation_id: UUID,
    denial_data: CheckoutDenial,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Manager sends the chef back; the reservation is active again"""
    return await checkout.deny_checkout(
        db, tenant_id, storage_reservation_id, denial_data.reason, notifier=notifier
    )


@router.post("/overstays/sweep", response_model=SweepResponse)
async def run_overstay_sweep(
    tenant_id: UUID,
    today: Optional[date] = Query(None, description="Defaults to the current UTC date"),
    db: AsyncSession = Depends(get_db),
):
    """Detect overstayed storage for this tenant"""
    today = today or datetime.utcnow().date()
    records = await overstay.sweep_overstays(db, today, tenant_id=tenant_id)
    return SweepResponse(
        today=today,
        records=[OverstayRecordResponse.model_validate(record) for record in records],
    )


@router.get("/overstays", response_model=List[OverstayRecordResponse])
async def list_overstays(
    tenant_id: UUID,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """List overstay records"""
    return await overstay.list_overstays(db, tenant_id, status)


@router.post("/overstays/{record_id}/charge", response_model=OverstayRecordResponse)
async def charge_overstay(
    tenant_id: UUID,
    record_id: UUID,
    charge_data: OverstayChargeRequest,
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Charge an overstay penalty"""
    return await overstay.charge_overstay_penalty(
        db, tenant_id, record_id, payments, customer_ref=charge_data.customer_ref
    )


@router.post("/overstays/{record_id}/waive", response_model=OverstayRecordResponse)
async def waive_overstay(
    tenant_id: UUID,
    record_id: UUID,
    waive_data: OverstayWaiveRequest,
    db: AsyncSession = Depends(get_db),
):
    """Waive an overstay penalty"""
    return await overstay.waive_overstay_penalty(db, tenant_id, record_id, waive_data.notes)
