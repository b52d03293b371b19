"""Storage reservation extensions"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.notifications import Notifier, notify_safely
from app.collaborators.payments import PaymentProvider, PaymentProviderError, expire_session_safely
from app.engine.booking import minimum_storage_days, verify_captured_payment
from app.engine.conflicts import ensure_storage_available
from app.engine.errors import (
    BelowMinimumDuration,
    ExtensionAlreadyPending,
    InvalidDateRange,
    InvalidStateTransition,
    PaymentSessionFailed,
    ResourceNotFound,
)
from app.engine.lookups import get_storage_reservation, get_extension
from app.engine.pricing import price_storage_days
from app.engine.transaction import write_transaction
from app.models.extension import PendingExtension, ExtensionStatus
from app.models.kitchen import Kitchen
from app.models.overstay import OverstayRecord, OverstayStatus, OPEN_OVERSTAY_STATUSES
from app.models.reservation import ReservationStatus, CHECKOUT_IN_PROGRESS
from app.schemas.payment import CapturedPayment

logger = structlog.get_logger()


async def _pending_extension(db: AsyncSession, storage_reservation_id: UUID) -> Optional[PendingExtension]:
    result = await db.execute(
        select(PendingExtension).where(
            PendingExtension.storage_reservation_id == storage_reservation_id,
            PendingExtension.status == ExtensionStatus.PENDING.value,
        )
    )
    return result.scalar_one_or_none()


async def request_extension(
    db: AsyncSession,
    tenant_id: UUID,
    storage_reservation_id: UUID,
    new_end_date: date,
    payments: PaymentProvider,
    service_fee_percent: Optional[Decimal] = None,
) -> PendingExtension:
    """Price an extension of [end_date, new_end_date) and open a payment session for it"""
    already_pending = ExtensionAlreadyPending(
        f"Storage reservation {storage_reservation_id} already has a pending extension"
    )

    token = None
    try:
        async with write_transaction(db, conflict_error=already_pending):
            storage, listing = await get_storage_reservation(db, tenant_id, storage_reservation_id)
            if storage.status == ReservationStatus.CANCELLED.value:
                raise ResourceNotFound(f"Storage reservation {storage_reservation_id} is cancelled")
            if storage.checkout_status in CHECKOUT_IN_PROGRESS:
                raise InvalidStateTransition(
                    f"Storage reservation {storage_reservation_id} is checking out ({storage.checkout_status})"
                )

            if new_end_date <= storage.end_date:
                raise InvalidDateRange("New end date must be after the current end date")

            extension_days = (new_end_date - storage.end_date).days
            minimum = minimum_storage_days(listing)
            if extension_days < minimum:
                raise BelowMinimumDuration(
                    f"Extensions of '{listing.name}' must be at least {minimum} days, {extension_days} requested"
                )

            if await _pending_extension(db, storage.id):
                raise already_pending

            await ensure_storage_available(
                db, listing.id, storage.end_date, new_end_date, exclude_reservation_id=storage.id
            )

            kitchen = await db.get(Kitchen, listing.kitchen_id)
            line = price_storage_days(listing, extension_days, service_fee_percent)

            extension = PendingExtension(
                storage_reservation_id=storage.id,
                previous_end_date=storage.end_date,
                new_end_date=new_end_date,
                extension_days=extension_days,
                base_price_cents=line.base_cents,
                service_fee_cents=line.service_fee_cents,
                computed_price_cents=line.total_cents,
                currency=kitchen.currency,
                status=ExtensionStatus.PENDING.value,
            )
            db.add(extension)
            await db.flush()

            try:
                token = await payments.create_payment_session(
                    line.total_cents,
                    kitchen.currency,
                    {
                        "extension_id": str(extension.id),
                        "storage_reservation_id": str(storage.id),
                        "description": f"Storage extension for {listing.name} until {new_end_date.isoformat()}",
                    },
                )
            except PaymentProviderError as e:
                raise PaymentSessionFailed(f"Could not open a payment session: {e}") from e
            extension.external_payment_session_id = token
    except Exception:
        await expire_session_safely(payments, token)
        raise

    logger.info(
        "Storage extension requested",
        extension_id=str(extension.id),
        storage_reservation_id=str(storage.id),
        extension_days=extension_days,
        price_cents=line.total_cents,
    )
    return extension


async def complete_extension(
    db: AsyncSession,
    tenant_id: UUID,
    extension_id: UUID,
    payment: CapturedPayment,
    notifier: Optional[Notifier] = None,
) -> PendingExtension:
    """
    Apply a paid extension to its storage reservation.

    The payment must come from the extension's own checkout session and cover
    its price. The extension's charges are added to the storage reservation so
    its recorded price matches what the chef paid. Completing twice is a no-op.
    """
    async with write_transaction(db):
        extension, storage = await get_extension(db, tenant_id, extension_id)
        if extension.status == ExtensionStatus.COMPLETED.value:
            return extension
        if extension.status != ExtensionStatus.PENDING.value:
            raise ResourceNotFound(f"Extension {extension_id} is no longer pending")
        if storage.status == ReservationStatus.CANCELLED.value:
            raise ResourceNotFound(f"Storage reservation {storage.id} is cancelled")
        verify_captured_payment(
            payment,
            extension.external_payment_session_id,
            extension.computed_price_cents,
            f"Extension {extension_id}",
        )

        await ensure_storage_available(
            db,
            storage.storage_listing_id,
            storage.end_date,
            extension.new_end_date,
            exclude_reservation_id=storage.id,
        )

        now = datetime.utcnow()
        storage.end_date = extension.new_end_date
        storage.base_price_cents += extension.base_price_cents
        storage.service_fee_cents += extension.service_fee_cents
        extension.status = ExtensionStatus.COMPLETED.value
        extension.completed_at = now

        overstays = await db.execute(
            select(OverstayRecord).where(
                OverstayRecord.storage_reservation_id == storage.id,
                OverstayRecord.status.in_(OPEN_OVERSTAY_STATUSES),
            )
        )
        for record in overstays.scalars().all():
            record.status = OverstayStatus.RESOLVED.value
            record.resolution = "extended"
            record.resolved_at = now

    logger.info(
        "Storage extension completed",
        extension_id=str(extension_id),
        storage_reservation_id=str(storage.id),
        new_end_date=extension.new_end_date.isoformat(),
        transaction_id=payment.external_transaction_id,
    )
    if notifier:
        await notify_safely(notifier, "booking.extended", {
            "extension_id": str(extension_id),
            "storage_reservation_id": str(storage.id),
            "new_end_date": extension.new_end_date.isoformat(),
        })
    return extension


async def fail_extension(db: AsyncSession, tenant_id: UUID, extension_id: UUID) -> PendingExtension:
    """Mark an unpaid extension failed so a new one can be requested"""
    async with write_transaction(db):
        extension, _ = await get_extension(db, tenant_id, extension_id)
        if extension.status == ExtensionStatus.PENDING.value:
            extension.status = ExtensionStatus.FAILED.value

    logger.info("Storage extension failed", extension_id=str(extension_id), status=extension.status)
    return extension
