"""Storage overstay detection and penalty resolution"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.payments import PaymentProvider, PaymentProviderError
from app.config import settings
from app.engine.errors import InvalidDateRange
from app.engine.lookups import get_overstay_record
from app.engine.money import round_money
from app.engine.pricing import daily_rate
from app.engine.transaction import write_transaction
from app.models.kitchen import Kitchen
from app.models.listing import StorageListing
from app.models.overstay import OverstayRecord, OverstayStatus, OPEN_OVERSTAY_STATUSES
from app.models.reservation import (
    Reservation,
    StorageReservation,
    ReservationStatus,
    PaymentStatus,
    CHECKOUT_IN_PROGRESS,
)
from app.models.tenant import Tenant

logger = structlog.get_logger()


class OverstayPolicy(NamedTuple):
    penalty_multiplier: Decimal
    grace_period_days: int
    max_penalty_days: int


def _first_set(*values):
    return next((value for value in values if value is not None), None)


def resolve_policy(listing: StorageListing, tenant: Optional[Tenant] = None) -> OverstayPolicy:
    """Listing settings win over tenant settings, which win over platform defaults"""
    tenant_values = (
        (tenant.overstay_penalty_multiplier, tenant.overstay_grace_period_days, tenant.overstay_max_penalty_days)
        if tenant is not None
        else (None, None, None)
    )
    return OverstayPolicy(
        penalty_multiplier=Decimal(_first_set(
            listing.overstay_penalty_multiplier,
            tenant_values[0],
            settings.overstay_penalty_multiplier,
        )),
        grace_period_days=_first_set(
            listing.overstay_grace_period_days,
            tenant_values[1],
            settings.overstay_grace_period_days,
        ),
        max_penalty_days=_first_set(
            listing.overstay_max_penalty_days,
            tenant_values[2],
            settings.overstay_max_penalty_days,
        ),
    )


def penalty_days(days_overdue: int, policy: OverstayPolicy) -> int:
    """Chargeable days after the grace period, capped at the policy maximum"""
    return min(max(days_overdue - policy.grace_period_days, 0), policy.max_penalty_days)


def compute_penalty(rate_cents: int, days: int, policy: OverstayPolicy) -> int:
    return round_money(Decimal(rate_cents) * days * policy.penalty_multiplier)


async def sweep_overstays(
    db: AsyncSession,
    today: date,
    tenant_id: Optional[UUID] = None,
) -> List[OverstayRecord]:
    """
    Record overstays for storage kept past its end date.

    One record exists per (storage reservation, end date). Open records are
    recomputed for ``today``; charged, waived and resolved records are left
    alone, so running the sweep again on the same data changes nothing.
    Storage whose checkout is requested or completed is skipped.
    """
    async with write_transaction(db):
        query = (
            select(StorageReservation, StorageListing, Kitchen, Tenant)
            .join(StorageListing, StorageListing.id == StorageReservation.storage_listing_id)
            .join(Kitchen, Kitchen.id == StorageListing.kitchen_id)
            .join(Tenant, Tenant.id == Kitchen.tenant_id)
            .where(
                StorageReservation.end_date < today,
                StorageReservation.status != ReservationStatus.CANCELLED.value,
                StorageReservation.payment_status != PaymentStatus.FAILED.value,
                StorageReservation.checkout_status.not_in(CHECKOUT_IN_PROGRESS),
            )
            .order_by(StorageReservation.end_date, StorageReservation.id)
        )
        if tenant_id:
            query = query.where(Kitchen.tenant_id == tenant_id)

        rows = (await db.execute(query)).all()

        records = []
        for storage, listing, kitchen, tenant in rows:
            existing_result = await db.execute(
                select(OverstayRecord).where(
                    OverstayRecord.storage_reservation_id == storage.id,
                    OverstayRecord.end_date == storage.end_date,
                )
            )
            record = existing_result.scalar_one_or_none()
            if record is not None and record.status not in OPEN_OVERSTAY_STATUSES:
                continue

            policy = resolve_policy(listing, tenant)
            days_overdue = (today - storage.end_date).days
            chargeable_days = penalty_days(days_overdue, policy)
            rate = daily_rate(listing)
            status = (
                OverstayStatus.GRACE_PERIOD.value
                if days_overdue <= policy.grace_period_days
                else OverstayStatus.PENDING_REVIEW.value
            )
            values = {
                "days_overdue": days_overdue,
                "penalty_days": chargeable_days,
                "daily_rate_cents": rate,
                "penalty_multiplier": policy.penalty_multiplier,
                "penalty_cents": compute_penalty(rate, chargeable_days, policy),
                "currency": kitchen.currency or settings.default_currency,
            }

            if record is None:
                record = OverstayRecord(
                    storage_reservation_id=storage.id,
                    end_date=storage.end_date,
                    status=status,
                    **values,
                )
                db.add(record)
            else:
                for key, value in values.items():
                    setattr(record, key, value)
                # A failed charge stays failed until it is retried or waived
                if record.status != OverstayStatus.CHARGE_FAILED.value:
                    record.status = status
            records.append(record)

        await db.flush()

    logger.info("Overstay sweep finished", today=today.isoformat(), records=len(records))
    return records


async def list_overstays(
    db: AsyncSession,
    tenant_id: UUID,
    status: Optional[str] = None,
) -> List[OverstayRecord]:
    query = (
        select(OverstayRecord)
        .join(StorageReservation, StorageReservation.id == OverstayRecord.storage_reservation_id)
        .join(Reservation, Reservation.id == StorageReservation.parent_booking_id)
        .where(Reservation.tenant_id == tenant_id)
        .order_by(OverstayRecord.detected_at.desc())
    )
    if status:
        query = query.where(OverstayRecord.status == status)

    result = await db.execute(query)
    return list(result.scalars().all())


async def charge_overstay_penalty(
    db: AsyncSession,
    tenant_id: UUID,
    record_id: UUID,
    payments: PaymentProvider,
    customer_ref: Optional[str] = None,
) -> OverstayRecord:
    """Charge an overstay penalty off-session; a declined charge is recorded, not raised"""
    async with write_transaction(db):
        record, storage = await get_overstay_record(db, tenant_id, record_id)
        if record.status not in OPEN_OVERSTAY_STATUSES:
            return record
        if record.penalty_cents <= 0:
            raise InvalidDateRange("Overstay is still within its grace period")

        try:
            result = await payments.charge_penalty(
                customer_ref or str(storage.chef_id),
                record.penalty_cents,
                record.currency,
                {
                    "overstay_record_id": str(record.id),
                    "storage_reservation_id": str(storage.id),
                    "end_date": record.end_date.isoformat(),
                },
            )
        except PaymentProviderError as e:
            logger.warning("Overstay charge failed", record_id=str(record.id), error=str(e))
            record.status = OverstayStatus.CHARGE_FAILED.value
            record.resolution_notes = str(e)
            return record

        if result.succeeded:
            record.status = OverstayStatus.CHARGED.value
            record.resolution = "charged"
            record.external_charge_id = result.charge_id
            record.resolved_at = datetime.utcnow()
        else:
            record.status = OverstayStatus.CHARGE_FAILED.value
            record.resolution_notes = result.failure_reason

    logger.info("Overstay penalty charged", record_id=str(record.id), status=record.status)
    return record


async def waive_overstay_penalty(
    db: AsyncSession,
    tenant_id: UUID,
    record_id: UUID,
    notes: Optional[str] = None,
) -> OverstayRecord:
    async with write_transaction(db):
        record, _ = await get_overstay_record(db, tenant_id, record_id)
        if record.status in OPEN_OVERSTAY_STATUSES:
            record.status = OverstayStatus.WAIVED.value
            record.resolution = "waived"
            record.resolution_notes = notes
            record.resolved_at = datetime.utcnow()

    logger.info("Overstay penalty waived", record_id=str(record_id))
    return record
