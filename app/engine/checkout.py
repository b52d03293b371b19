"""Storage checkout: the chef moves out and the manager confirms the unit is empty"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.notifications import Notifier, notify_safely
from app.engine.errors import InvalidStateTransition, NotEligible
from app.engine.lookups import get_storage_reservation
from app.engine.transaction import write_transaction
from app.models.reservation import StorageReservation, ReservationStatus, CheckoutStatus

logger = structlog.get_logger()


def _require_checkout_status(storage: StorageReservation, expected: CheckoutStatus) -> None:
    if storage.checkout_status != expected.value:
        raise InvalidStateTransition(
            f"Storage reservation {storage.id} checkout is {storage.checkout_status}, expected {expected.value}"
        )


async def _emit(notifier: Optional[Notifier], event: str, storage: StorageReservation, **extra) -> None:
    if notifier:
        await notify_safely(notifier, event, {
            "storage_reservation_id": str(storage.id),
            "chef_id": str(storage.chef_id) if storage.chef_id else None,
            "checkout_status": storage.checkout_status,
            **extra,
        })


async def request_checkout(
    db: AsyncSession,
    tenant_id: UUID,
    storage_reservation_id: UUID,
    chef_id: Optional[UUID] = None,
    notes: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> StorageReservation:
    """Chef reports the unit emptied; overstay stops accruing from here"""
    async with write_transaction(db):
        storage, _ = await get_storage_reservation(db, tenant_id, storage_reservation_id)
        if chef_id is not None and storage.chef_id != chef_id:
            raise NotEligible(f"Chef {chef_id} does not hold storage reservation {storage.id}")
        if storage.status == ReservationStatus.CANCELLED.value:
            raise InvalidStateTransition(f"Storage reservation {storage.id} is cancelled")
        _require_checkout_status(storage, CheckoutStatus.ACTIVE)

        storage.checkout_status = CheckoutStatus.CHECKOUT_REQUESTED.value
        storage.checkout_requested_at = datetime.utcnow()
        storage.checkout_notes = notes
        storage.checkout_denial_reason = None

    logger.info("Storage checkout requested", storage_reservation_id=str(storage.id))
    await _emit(notifier, "storage.checkout_requested", storage)
    return storage


async def approve_checkout(
    db: AsyncSession,
    tenant_id: UUID,
    storage_reservation_id: UUID,
    notes: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> StorageReservation:
    async with write_transaction(db):
        storage, _ = await get_storage_reservation(db, tenant_id, storage_reservation_id)
        _require_checkout_status(storage, CheckoutStatus.CHECKOUT_REQUESTED)

        storage.checkout_status = CheckoutStatus.COMPLETED.value
        storage.checkout_completed_at = datetime.utcnow()
        if notes:
            prefix = f"{storage.checkout_notes}\n" if storage.checkout_notes else ""
            storage.checkout_notes = f"{prefix}Manager: {notes}"

    logger.info("Storage checkout approved", storage_reservation_id=str(storage.id))
    await _emit(notifier, "storage.checkout_completed", storage)
    return storage


async def deny_checkout(
    db: AsyncSession,
    tenant_id: UUID,
    storage_reservation_id: UUID,
    reason: str,
    notifier: Optional[Notifier] = None,
) -> StorageReservation:
    """Send the chef back to fix the unit; overstay accrues again until a new request"""
    async with write_transaction(db):
        storage, _ = await get_storage_reservation(db, tenant_id, storage_reservation_id)
        _require_checkout_status(storage, CheckoutStatus.CHECKOUT_REQUESTED)

        storage.checkout_status = CheckoutStatus.ACTIVE.value
        storage.checkout_denial_reason = reason

    logger.info("Storage checkout denied", storage_reservation_id=str(storage.id), reason=reason)
    await _emit(notifier, "storage.checkout_denied", storage, reason=reason)
    return storage
