"""
Booking coordinator.

A booking is one kitchen reservation (the parent) plus any storage and rental
equipment reservations bundled under it. Everything is validated, priced and
written in one transaction, so either the whole bundle exists or none of it.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, NamedTuple, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.eligibility import EligibilityService
from app.collaborators.notifications import Notifier, notify_safely
from app.collaborators.payments import PaymentProvider, PaymentProviderError, expire_session_safely
from app.config import settings
from app.engine.availability import parse_time, resolve_open_ranges, window_fits, format_time
from app.engine.conflicts import (
    ensure_kitchen_available,
    ensure_storage_available,
    ensure_equipment_available,
    ranges_overlap,
)
from app.engine.errors import (
    BelowMinimumDuration,
    InvalidDateRange,
    NotEligible,
    PaymentMismatch,
    PaymentSessionFailed,
    SlotUnavailable,
)
from app.engine.lookups import get_kitchen, get_reservation, get_storage_listing, get_equipment_listing
from app.engine.money import percent_of
from app.engine.pricing import PriceBreakdown, price_booking, unit_days
from app.engine.transaction import write_transaction
from app.models.listing import StorageListing, EquipmentAvailability
from app.models.payment import PaymentTransaction
from app.models.reservation import (
    Reservation,
    StorageReservation,
    EquipmentReservation,
    ReservationStatus,
    BookingType,
    PaymentStatus,
)
from app.schemas.booking import BookingCreate
from app.schemas.payment import CapturedPayment

logger = structlog.get_logger()


class BookingResult(NamedTuple):
    reservation: Reservation
    storage: List[StorageReservation]
    equipment: List[EquipmentReservation]
    breakdown: PriceBreakdown
    payment_session_token: Optional[str]
    included_equipment_ids: List[UUID]


class BookingDetail(NamedTuple):
    reservation: Reservation
    storage: List[StorageReservation]
    equipment: List[EquipmentReservation]


def minimum_storage_days(listing: StorageListing) -> int:
    return (listing.minimum_booking_duration or 1) * unit_days(listing.booking_duration_unit)


def validate_storage_range(listing: StorageListing, start_date: date, end_date: date) -> int:
    """Check a storage range against the listing policy and return its length in days"""
    days = (end_date - start_date).days
    if days <= 0:
        raise InvalidDateRange("Storage end date must be after its start date")

    minimum = minimum_storage_days(listing)
    if days < minimum:
        raise BelowMinimumDuration(
            f"Storage '{listing.name}' requires at least {minimum} days, {days} requested"
        )
    return days


def parse_window(start_time: str, end_time: str):
    """Convert an "HH:MM" window to minutes, requiring start < end"""
    try:
        start_minute, end_minute = parse_time(start_time), parse_time(end_time)
    except ValueError as e:
        raise InvalidDateRange(str(e))

    if start_minute >= end_minute:
        raise InvalidDateRange("Start time must be before end time")
    return start_minute, end_minute


def verify_captured_payment(
    payment: CapturedPayment,
    session_token: Optional[str],
    amount_due: int,
    label: str,
) -> None:
    """A capture counts only for the session it was opened for and only when it covers the amount due"""
    if session_token and payment.payment_session_token != session_token:
        raise PaymentMismatch(f"{label}: payment was not made in its checkout session")
    if payment.amount_cents < amount_due:
        raise PaymentMismatch(
            f"{label}: captured {payment.amount_cents} but {amount_due} is due"
        )


async def load_children(db: AsyncSession, booking_id: UUID):
    storage_result = await db.execute(
        select(StorageReservation)
        .where(StorageReservation.parent_booking_id == booking_id)
        .order_by(StorageReservation.start_date)
    )
    equipment_result = await db.execute(
        select(EquipmentReservation)
        .where(EquipmentReservation.parent_booking_id == booking_id)
        .order_by(EquipmentReservation.created_at)
    )
    return list(storage_result.scalars().all()), list(equipment_result.scalars().all())


async def get_booking(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> BookingDetail:
    reservation = await get_reservation(db, tenant_id, booking_id)
    storage, equipment = await load_children(db, reservation.id)
    return BookingDetail(reservation, storage, equipment)


async def create_booking(
    db: AsyncSession,
    request: BookingCreate,
    chef_id: UUID,
    tenant_id: UUID,
    eligibility: EligibilityService,
    payments: PaymentProvider,
    notifier: Notifier,
    service_fee_percent: Optional[Decimal] = None,
) -> BookingResult:
    """Validate, price and persist a kitchen booking with its bundled rentals"""
    start_minute, end_minute = parse_window(request.start_time, request.end_time)
    booking_date = request.date

    token = None
    try:
        async with write_transaction(db):
            kitchen = await get_kitchen(db, tenant_id, request.kitchen_id)

            if not await eligibility.is_eligible_to_book(chef_id, kitchen.id):
                raise NotEligible(f"Chef {chef_id} is not approved to book kitchen {kitchen.id}")

            open_ranges = await resolve_open_ranges(db, kitchen.id, booking_date)
            if not window_fits(open_ranges, start_minute, end_minute):
                raise SlotUnavailable(
                    f"{format_time(start_minute)}-{format_time(end_minute)} is outside the kitchen's "
                    f"open hours on {booking_date.isoformat()}"
                )
            await ensure_kitchen_available(db, kitchen.id, booking_date, start_minute, end_minute)

            # Storage
            storage_plan = []
            for item in request.storage_items:
                listing = await get_storage_listing(db, kitchen.id, item.listing_id)
                validate_storage_range(listing, item.start_date, item.end_date)
                await ensure_storage_available(db, listing.id, item.start_date, item.end_date)

                for planned, planned_start, planned_end in storage_plan:
                    if planned.id == listing.id and ranges_overlap(
                        planned_start, planned_end, item.start_date, item.end_date
                    ):
                        raise SlotUnavailable(f"Storage {listing.id} is requested twice for overlapping dates")
                storage_plan.append((listing, item.start_date, item.end_date))

            # Equipment: rentals are booked for the booking date, included items are only recorded
            rentals = []
            included_ids = []
            for item in request.equipment_items:
                listing = await get_equipment_listing(db, kitchen.id, item.listing_id)
                if listing.availability_type == EquipmentAvailability.INCLUDED.value:
                    if listing.id not in included_ids:
                        included_ids.append(listing.id)
                    continue

                if any(rented.id == listing.id for rented in rentals):
                    raise SlotUnavailable(f"Equipment {listing.id} is requested twice")
                await ensure_equipment_available(
                    db, listing.id, booking_date, booking_date + timedelta(days=1)
                )
                rentals.append(listing)

            breakdown = price_booking(
                kitchen, start_minute, end_minute, storage_plan, rentals, service_fee_percent
            )

            reservation = Reservation(
                tenant_id=tenant_id,
                kitchen_id=kitchen.id,
                owner_id=chef_id,
                booking_date=booking_date,
                start_minute=start_minute,
                end_minute=end_minute,
                status=ReservationStatus.PENDING.value,
                booking_type=BookingType.CHEF.value,
                payment_status=PaymentStatus.PENDING.value,
                currency=breakdown.currency,
                kitchen_subtotal_cents=breakdown.kitchen_subtotal,
                service_fee_cents=breakdown.service_fees,
                deposit_cents=breakdown.deposits,
                total_cents=breakdown.total,
                included_equipment=[str(listing_id) for listing_id in included_ids],
            )
            db.add(reservation)
            await db.flush()

            storage_rows = []
            for (listing, start, end), line in zip(storage_plan, breakdown.storage):
                row = StorageReservation(
                    storage_listing_id=listing.id,
                    parent_booking_id=reservation.id,
                    chef_id=chef_id,
                    start_date=start,
                    end_date=end,
                    base_price_cents=line.base_cents,
                    service_fee_cents=line.service_fee_cents,
                )
                db.add(row)
                storage_rows.append(row)

            equipment_rows = []
            for listing, line in zip(rentals, breakdown.equipment):
                row = EquipmentReservation(
                    equipment_listing_id=listing.id,
                    parent_booking_id=reservation.id,
                    chef_id=chef_id,
                    start_date=booking_date,
                    end_date=booking_date + timedelta(days=1),
                    session_rate_cents=line.base_cents,
                    service_fee_cents=line.service_fee_cents,
                    damage_deposit_cents=line.deposit_cents,
                )
                db.add(row)
                equipment_rows.append(row)

            await db.flush()

            try:
                token = await payments.create_payment_session(
                    breakdown.total,
                    breakdown.currency,
                    {
                        "booking_id": str(reservation.id),
                        "tenant_id": str(tenant_id),
                        "chef_id": str(chef_id),
                        "description": f"{kitchen.name} on {booking_date.isoformat()}",
                    },
                )
            except PaymentProviderError as e:
                raise PaymentSessionFailed(f"Could not open a payment session: {e}") from e
            reservation.payment_session_token = token
    except Exception:
        # The session points at a booking that was never committed
        await expire_session_safely(payments, token)
        raise

    logger.info(
        "Booking created",
        booking_id=str(reservation.id),
        kitchen_id=str(kitchen.id),
        chef_id=str(chef_id),
        storage_count=len(storage_rows),
        equipment_count=len(equipment_rows),
        total_cents=breakdown.total,
    )

    await notify_safely(notifier, "booking.created", {
        "booking_id": str(reservation.id),
        "tenant_id": str(tenant_id),
        "kitchen_id": str(kitchen.id),
        "chef_id": str(chef_id),
        "date": booking_date.isoformat(),
        "start_time": format_time(start_minute),
        "end_time": format_time(end_minute),
        "total_cents": breakdown.total,
        "currency": breakdown.currency,
    })

    return BookingResult(
        reservation=reservation,
        storage=storage_rows,
        equipment=equipment_rows,
        breakdown=breakdown,
        payment_session_token=token,
        included_equipment_ids=included_ids,
    )


def _set_children_state(children, status: str, payment_status: str) -> List[UUID]:
    changed = []
    for child in children:
        if child.status == ReservationStatus.CANCELLED.value:
            continue
        child.status = status
        child.payment_status = payment_status
        changed.append(child.id)
    return changed


async def confirm_booking_payment(
    db: AsyncSession,
    tenant_id: UUID,
    booking_id: UUID,
    payment: CapturedPayment,
    notifier: Optional[Notifier] = None,
) -> BookingDetail:
    """Record a captured payment and confirm the booking with its sub-reservations"""
    async with write_transaction(db):
        reservation = await get_reservation(db, tenant_id, booking_id)
        storage, equipment = await load_children(db, reservation.id)

        if reservation.status == ReservationStatus.CONFIRMED.value:
            return BookingDetail(reservation, storage, equipment)
        if reservation.status == ReservationStatus.CANCELLED.value:
            raise SlotUnavailable(f"Booking {booking_id} was cancelled before payment completed")
        verify_captured_payment(
            payment, reservation.payment_session_token, reservation.total_cents, f"Booking {booking_id}"
        )

        platform_fee = payment.platform_fee_cents
        if platform_fee is None:
            platform_fee = percent_of(payment.amount_cents, settings.platform_fee_percent)
        manager_revenue = max(0, payment.amount_cents - platform_fee - payment.processor_fee_cents)

        db.add(PaymentTransaction(
            booking_id=reservation.id,
            external_transaction_id=payment.external_transaction_id,
            amount_cents=payment.amount_cents,
            platform_fee_cents=platform_fee,
            processor_fee_cents=payment.processor_fee_cents,
            manager_revenue_cents=manager_revenue,
            currency=reservation.currency,
        ))

        reservation.status = ReservationStatus.CONFIRMED.value
        reservation.payment_status = PaymentStatus.PAID.value
        _set_children_state(
            [*storage, *equipment], ReservationStatus.CONFIRMED.value, PaymentStatus.PAID.value
        )

    logger.info("Booking confirmed", booking_id=str(booking_id), amount_cents=payment.amount_cents)
    if notifier:
        await notify_safely(notifier, "booking.confirmed", {
            "booking_id": str(booking_id),
            "tenant_id": str(tenant_id),
        })
    return BookingDetail(reservation, storage, equipment)


def _cancel_unpaid(reservation: Reservation, children, reason: str) -> None:
    reservation.status = ReservationStatus.CANCELLED.value
    reservation.payment_status = PaymentStatus.FAILED.value
    reservation.cancelled_at = datetime.utcnow()
    reservation.cancellation_reason = reason
    _set_children_state(children, ReservationStatus.CANCELLED.value, PaymentStatus.FAILED.value)


async def fail_booking_payment(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> BookingDetail:
    """Release a pending booking whose payment failed"""
    async with write_transaction(db):
        reservation = await get_reservation(db, tenant_id, booking_id)
        storage, equipment = await load_children(db, reservation.id)
        if reservation.status == ReservationStatus.PENDING.value:
            _cancel_unpaid(reservation, [*storage, *equipment], "payment_failed")
            logger.info("Booking payment failed", booking_id=str(booking_id))
        else:
            logger.warning(
                "Ignoring payment failure for settled booking",
                booking_id=str(booking_id),
                status=reservation.status,
            )

    return BookingDetail(reservation, storage, equipment)


async def release_unpaid_bookings(db: AsyncSession, older_than: datetime) -> int:
    """Cancel pending bookings created before the cut-off"""
    async with write_transaction(db):
        result = await db.execute(
            select(Reservation).where(
                Reservation.status == ReservationStatus.PENDING.value,
                Reservation.created_at < older_than,
            )
        )
        expired = list(result.scalars().all())
        for reservation in expired:
            storage, equipment = await load_children(db, reservation.id)
            _cancel_unpaid(reservation, [*storage, *equipment], "payment_timeout")

    if expired:
        logger.info("Released unpaid bookings", count=len(expired))
    return len(expired)


async def create_manager_block(
    db: AsyncSession,
    tenant_id: UUID,
    kitchen_id: UUID,
    booking_date: date,
    start_time: str,
    end_time: str,
    reason: Optional[str] = None,
) -> Reservation:
    """Hold a kitchen window for the manager; no chef, no payment"""
    start_minute, end_minute = parse_window(start_time, end_time)

    async with write_transaction(db):
        kitchen = await get_kitchen(db, tenant_id, kitchen_id)
        await ensure_kitchen_available(db, kitchen.id, booking_date, start_minute, end_minute)

        reservation = Reservation(
            tenant_id=tenant_id,
            kitchen_id=kitchen.id,
            owner_id=None,
            booking_date=booking_date,
            start_minute=start_minute,
            end_minute=end_minute,
            status=ReservationStatus.CONFIRMED.value,
            booking_type=BookingType.MANAGER_BLOCKED.value,
            payment_status=PaymentStatus.PAID.value,
            currency=kitchen.currency,
            included_equipment=[],
            notes=reason,
        )
        db.add(reservation)
        await db.flush()

    logger.info(
        "Manager block created",
        booking_id=str(reservation.id),
        kitchen_id=str(kitchen_id),
        date=booking_date.isoformat(),
    )
    return reservation
