"""Booking API endpoints"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_eligibility_service, get_payment_provider, get_notifier
from app.collaborators.eligibility import EligibilityService
from app.collaborators.notifications import Notifier
from app.collaborators.payments import PaymentProvider
from app.database import get_db
from app.engine import booking as booking_engine
from app.engine import cancellation
from app.engine.availability import format_time
from app.models.reservation import Reservation, StorageReservation, EquipmentReservation
from app.schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    CancelRequest,
    CancellationResponse,
    EquipmentReservationResponse,
    PriceBreakdownResponse,
    RefundRequest,
    RefundResponse,
    StorageReservationResponse,
)
from app.schemas.payment import CapturedPayment

router = APIRouter()


def build_booking_response(
    reservation: Reservation,
    storage: List[StorageReservation] = (),
    equipment: List[EquipmentReservation] = (),
) -> BookingResponse:
    return BookingResponse(
        id=reservation.id,
        tenant_id=reservation.tenant_id,
        kitchen_id=reservation.kitchen_id,
        owner_id=reservation.owner_id,
        booking_date=reservation.booking_date,
        start_time=format_time(reservation.start_minute),
        end_time=format_time(reservation.end_minute),
        status=reservation.status,
        booking_type=reservation.booking_type,
        payment_status=reservation.payment_status,
        currency=reservation.currency,
        kitchen_subtotal_cents=reservation.kitchen_subtotal_cents,
        service_fee_cents=reservation.service_fee_cents,
        deposit_cents=reservation.deposit_cents,
        total_cents=reservation.total_cents,
        included_equipment=reservation.included_equipment or [],
        cancelled_at=reservation.cancelled_at,
        cancellation_reason=reservation.cancellation_reason,
        created_at=reservation.created_at,
        storage_reservations=[StorageReservationResponse.model_validate(row) for row in storage],
        equipment_reservations=[EquipmentReservationResponse.model_validate(row) for row in equipment],
    )


@router.post("", response_model=BookingCreateResponse, status_code=201)
async def create_booking(
    tenant_id: UUID,
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    eligibility: EligibilityService = Depends(get_eligibility_service),
    payments: PaymentProvider = Depends(get_payment_provider),
    notifier: Notifier = Depends(get_notifier),
):
    """Book a kitchen window with optional storage and equipment"""
    result = await booking_engine.create_booking(
        db,
        booking_data,
        chef_id=booking_data.chef_id,
        tenant_id=tenant_id,
        eligibility=eligibility,
        payments=payments,
        notifier=notifier,
    )
    breakdown = result.breakdown

    return BookingCreateResponse(
        booking_id=result.reservation.id,
        status=result.reservation.status,
        price_breakdown=PriceBreakdownResponse(
            kitchen_subtotal=breakdown.kitchen_subtotal,
            storage_subtotals=breakdown.storage_subtotals,
            equipment_subtotals=breakdown.equipment_subtotals,
            service_fees=breakdown.service_fees,
            deposits=breakdown.deposits,
            total=breakdown.total,
            currency=breakdown.currency,
        ),
        payment_session_token=result.payment_session_token,
        included_equipment_ids=result.included_equipment_ids,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    tenant_id: UUID,
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a booking with its storage and equipment reservations"""
    detail = await booking_engine.get_booking(db, tenant_id, booking_id)
    return build_booking_response(*detail)


@router.post("/{booking_id}/payment-confirmation", response_model=BookingResponse)
async def confirm_payment(
    tenant_id: UUID,
    booking_id: UUID,
    payment: CapturedPayment,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Payment captured: confirm the booking"""
    detail = await booking_engine.confirm_booking_payment(db, tenant_id, booking_id, payment, notifier)
    return build_booking_response(*detail)


@router.post("/{booking_id}/payment-failure", response_model=BookingResponse)
async def payment_failed(
    tenant_id: UUID,
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Payment failed: release the booking"""
    detail = await booking_engine.fail_booking_payment(db, tenant_id, booking_id)
    return build_booking_response(*detail)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    tenant_id: UUID,
    booking_id: UUID,
    cancel_data: CancelRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Cancel a booking and everything bundled under it"""
    result = await cancellation.cancel_booking(
        db,
        tenant_id,
        booking_id,
        reason=cancel_data.reason,
        requested_refund_cents=cancel_data.requested_refund_cents,
        notifier=notifier,
    )
    return CancellationResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        cancelled_storage_ids=result.cancelled_storage_ids,
        cancelled_equipment_ids=result.cancelled_equipment_ids,
        refundable_cents=result.refundable_cents,
    )


@router.post("/{booking_id}/refunds", response_model=RefundResponse, status_code=201)
async def issue_refund(
    tenant_id: UUID,
    booking_id: UUID,
    refund_data: RefundRequest,
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Refund up to the remaining refundable balance"""
    outcome = await cancellation.issue_refund(db, tenant_id, booking_id, refund_data.amount_cents, payments)
    return RefundResponse(
        booking_id=outcome.booking.id,
        refund_id=outcome.refund.refund_id,
        amount_cents=refund_data.amount_cents,
        refunded_total_cents=outcome.transaction.refunded_cents,
        remaining_refundable_cents=outcome.remaining_refundable_cents,
        payment_status=outcome.booking.payment_status,
    )
