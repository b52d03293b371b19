"""Cancellation cascade and refund limits"""

from datetime import datetime
from typing import List, NamedTuple, Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.notifications import Notifier, notify_safely
from app.collaborators.payments import PaymentProvider, PaymentProviderError
from app.engine.booking import load_children
from app.engine.errors import RefundExceedsBalance, PaymentSessionFailed
from app.engine.lookups import get_reservation
from app.engine.transaction import write_transaction
from app.models.extension import PendingExtension, ExtensionStatus
from app.models.payment import PaymentTransaction
from app.models.reservation import Reservation, ReservationStatus, PaymentStatus
from app.schemas.payment import RefundResult

logger = structlog.get_logger()


class CancellationResult(NamedTuple):
    booking: Reservation
    cancelled_storage_ids: List[UUID]
    cancelled_equipment_ids: List[UUID]
    refundable_cents: int


class RefundOutcome(NamedTuple):
    booking: Reservation
    transaction: PaymentTransaction
    refund: RefundResult
    remaining_refundable_cents: int


def refundable_amount(transaction: Optional[PaymentTransaction]) -> int:
    """
    What can still be refunded for a booking.

    Platform and processor fees are never returned, so the cap is what the
    kitchen manager actually received minus anything refunded already.
    """
    if transaction is None:
        return 0
    return max(0, transaction.manager_revenue_cents - (transaction.refunded_cents or 0))


async def get_payment_transaction(
    db: AsyncSession, booking_id: UUID, for_update: bool = False
) -> Optional[PaymentTransaction]:
    query = select(PaymentTransaction).where(PaymentTransaction.booking_id == booking_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def cancel_booking(
    db: AsyncSession,
    tenant_id: UUID,
    booking_id: UUID,
    reason: Optional[str] = None,
    requested_refund_cents: Optional[int] = None,
    notifier: Optional[Notifier] = None,
) -> CancellationResult:
    """Cancel a booking and every storage/equipment reservation under it"""
    async with write_transaction(db):
        reservation = await get_reservation(db, tenant_id, booking_id)
        transaction = await get_payment_transaction(db, reservation.id)
        refundable = refundable_amount(transaction)

        if requested_refund_cents is not None and requested_refund_cents > refundable:
            raise RefundExceedsBalance(
                f"Requested refund of {requested_refund_cents} exceeds the refundable balance of {refundable}"
            )

        if reservation.status == ReservationStatus.CANCELLED.value:
            return CancellationResult(reservation, [], [], refundable)

        storage, equipment = await load_children(db, reservation.id)
        cancelled_storage_ids = []
        cancelled_equipment_ids = []

        for row in storage:
            if row.status != ReservationStatus.CANCELLED.value:
                row.status = ReservationStatus.CANCELLED.value
                cancelled_storage_ids.append(row.id)

        for row in equipment:
            if row.status != ReservationStatus.CANCELLED.value:
                row.status = ReservationStatus.CANCELLED.value
                cancelled_equipment_ids.append(row.id)

        # Unpaid extensions of cancelled storage can no longer complete
        if cancelled_storage_ids:
            pending = await db.execute(
                select(PendingExtension).where(
                    PendingExtension.storage_reservation_id.in_(cancelled_storage_ids),
                    PendingExtension.status == ExtensionStatus.PENDING.value,
                )
            )
            for extension in pending.scalars().all():
                extension.status = ExtensionStatus.FAILED.value

        reservation.status = ReservationStatus.CANCELLED.value
        reservation.cancelled_at = datetime.utcnow()
        reservation.cancellation_reason = reason

    logger.info(
        "Booking cancelled",
        booking_id=str(booking_id),
        storage_cancelled=len(cancelled_storage_ids),
        equipment_cancelled=len(cancelled_equipment_ids),
        refundable_cents=refundable,
    )

    if notifier:
        await notify_safely(notifier, "booking.cancelled", {
            "booking_id": str(booking_id),
            "tenant_id": str(tenant_id),
            "reason": reason,
            "refundable_cents": refundable,
        })

    return CancellationResult(reservation, cancelled_storage_ids, cancelled_equipment_ids, refundable)


def _apply_refund_status(reservation: Reservation, transaction: PaymentTransaction) -> None:
    if not transaction.refunded_cents:
        transaction.status = "succeeded"
        reservation.payment_status = PaymentStatus.PAID.value
        return

    if refundable_amount(transaction) == 0:
        status = PaymentStatus.REFUNDED.value
    else:
        status = PaymentStatus.PARTIALLY_REFUNDED.value
    transaction.status = status
    reservation.payment_status = status


async def issue_refund(
    db: AsyncSession,
    tenant_id: UUID,
    booking_id: UUID,
    amount_cents: int,
    payments: PaymentProvider,
) -> RefundOutcome:
    """
    Refund part or all of the refundable balance through the payment collaborator.

    The amount is counted against the cap and committed before the processor is
    called, so two refunds can never both spend the same balance. If the
    processor rejects the refund the amount is released again.
    """
    if amount_cents <= 0:
        raise ValueError("Refund amount must be positive")

    async with write_transaction(db):
        reservation = await get_reservation(db, tenant_id, booking_id)
        transaction = await get_payment_transaction(db, reservation.id, for_update=True)
        refundable = refundable_amount(transaction)

        if transaction is None or amount_cents > refundable:
            raise RefundExceedsBalance(
                f"Requested refund of {amount_cents} exceeds the refundable balance of {refundable}"
            )

        transaction.refunded_cents = (transaction.refunded_cents or 0) + amount_cents
        _apply_refund_status(reservation, transaction)

    try:
        refund = await payments.refund(
            transaction.external_transaction_id,
            amount_cents,
            idempotency_key=f"refund-{transaction.id}-{uuid4()}",
        )
    except PaymentProviderError as e:
        await _release_refund(db, tenant_id, booking_id, amount_cents)
        raise PaymentSessionFailed(f"Refund could not be issued: {e}") from e

    remaining = refundable_amount(transaction)
    logger.info(
        "Refund issued",
        booking_id=str(booking_id),
        amount_cents=amount_cents,
        refund_id=refund.refund_id,
        remaining_cents=remaining,
    )
    return RefundOutcome(reservation, transaction, refund, remaining)


async def _release_refund(db: AsyncSession, tenant_id: UUID, booking_id: UUID, amount_cents: int) -> None:
    """Give back a counted refund the processor did not pay out"""
    async with write_transaction(db):
        reservation = await get_reservation(db, tenant_id, booking_id)
        transaction = await get_payment_transaction(db, reservation.id, for_update=True)
        transaction.refunded_cents = max(0, (transaction.refunded_cents or 0) - amount_cents)
        _apply_refund_status(reservation, transaction)

    logger.warning("Refund released after processor failure", booking_id=str(booking_id), amount_cents=amount_cents)
