"""Tests for the booking coordinator"""

import asyncio
import itertools
import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import Base, build_engine
from app.engine import booking as booking_engine
from app.engine.availability import format_time
from app.engine.cancellation import cancel_booking
from app.engine.conflicts import ranges_overlap
from app.engine.errors import (
    BelowMinimumDuration,
    InvalidDateRange,
    NotEligible,
    PaymentMismatch,
    PaymentSessionFailed,
    ResourceNotFound,
    SlotUnavailable,
)
from app.models.kitchen import Kitchen, WeeklyAvailability
from app.models.payment import PaymentTransaction
from app.models.reservation import (
    Reservation,
    StorageReservation,
    EquipmentReservation,
    ReservationStatus,
    PaymentStatus,
)
from app.models.tenant import Tenant
from app.schemas.booking import BookingCreate, StorageItemRequest, EquipmentItemRequest
from app.schemas.payment import CapturedPayment

MONDAY = date(2025, 1, 6)


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def _book(db, request, test_tenant, eligibility, payments, notifier, chef=None):
    return await booking_engine.create_booking(
        db,
        request,
        chef_id=chef or request.chef_id,
        tenant_id=test_tenant.id,
        eligibility=eligibility,
        payments=payments,
        notifier=notifier,
        service_fee_percent=Decimal("10"),
    )


@pytest.mark.asyncio
async def test_create_booking_with_storage_and_equipment(
    test_db, test_tenant, make_request, daily_storage, rental_mixer, included_oven,
    eligibility, payments, notifier, chef_id,
):
    request = make_request(
        storage_items=[StorageItemRequest(
            listing_id=daily_storage.id, start_date=MONDAY, end_date=date(2025, 1, 9),
        )],
        equipment_items=[
            EquipmentItemRequest(listing_id=rental_mixer.id),
            EquipmentItemRequest(listing_id=included_oven.id),
        ],
    )

    result = await _book(test_db, request, test_tenant, eligibility, payments, notifier)

    reservation = result.reservation
    assert reservation.status == ReservationStatus.PENDING.value
    assert reservation.payment_status == PaymentStatus.PENDING.value
    assert reservation.owner_id == chef_id
    assert reservation.start_minute == 600
    assert reservation.end_minute == 720

    # 2h kitchen + 3 days storage + mixer session, 10% fee, deposit outside the fee base
    assert result.breakdown.kitchen_subtotal == 10000
    assert result.breakdown.storage_subtotals == [3000]
    assert result.breakdown.equipment_subtotals == [2500]
    assert result.breakdown.service_fees == 1550
    assert result.breakdown.deposits == 10000
    assert result.breakdown.total == 27050
    assert reservation.total_cents == 27050

    assert len(result.storage) == 1
    assert result.storage[0].parent_booking_id == reservation.id
    assert len(result.equipment) == 1
    assert result.equipment[0].start_date == MONDAY
    assert result.equipment[0].end_date == date(2025, 1, 7)
    assert result.included_equipment_ids == [included_oven.id]
    assert reservation.included_equipment == [str(included_oven.id)]

    assert result.payment_session_token == payments.sessions[0][0]
    assert payments.sessions[0][1] == 27050
    assert reservation.payment_session_token == result.payment_session_token
    assert [event for event, _ in notifier.events] == ["booking.created"]


@pytest.mark.asyncio
async def test_not_eligible_chef_is_rejected(test_db, test_tenant, make_request, eligibility, payments, notifier):
    eligibility.eligible = False

    with pytest.raises(NotEligible):
        await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)

    assert await _count(test_db, Reservation) == 0
    assert payments.sessions == []


@pytest.mark.asyncio
async def test_below_minimum_storage_rolls_back_whole_booking(
    test_db, test_tenant, make_request, three_day_storage, eligibility, payments, notifier,
):
    """Kitchen 10:00-12:00 plus one day of three-day-minimum storage persists nothing"""
    request = make_request(storage_items=[StorageItemRequest(
        listing_id=three_day_storage.id, start_date=MONDAY, end_date=date(2025, 1, 7),
    )])

    with pytest.raises(BelowMinimumDuration):
        await _book(test_db, request, test_tenant, eligibility, payments, notifier)

    assert await _count(test_db, Reservation) == 0
    assert await _count(test_db, StorageReservation) == 0
    assert payments.expired == []
    assert notifier.events == []


@pytest.mark.asyncio
async def test_storage_end_before_start_is_invalid(
    test_db, test_tenant, make_request, daily_storage, eligibility, payments, notifier,
):
    request = make_request(storage_items=[StorageItemRequest(
        listing_id=daily_storage.id, start_date=date(2025, 1, 9), end_date=MONDAY,
    )])

    with pytest.raises(InvalidDateRange):
        await _book(test_db, request, test_tenant, eligibility, payments, notifier)


@pytest.mark.asyncio
async def test_window_outside_open_hours(test_db, test_tenant, make_request, eligibility, payments, notifier):
    with pytest.raises(SlotUnavailable):
        await _book(test_db, make_request("16:00", "18:00"), test_tenant, eligibility, payments, notifier)

    # Sundays are closed
    with pytest.raises(SlotUnavailable):
        await _book(
            test_db, make_request(booking_date=date(2025, 1, 5)), test_tenant, eligibility, payments, notifier
        )


@pytest.mark.asyncio
async def test_overlapping_booking_rejected_adjacent_allowed(
    test_db, test_tenant, make_request, eligibility, payments, notifier,
):
    await _book(test_db, make_request("10:00", "12:00"), test_tenant, eligibility, payments, notifier)

    with pytest.raises(SlotUnavailable):
        await _book(test_db, make_request("11:00", "13:00", chef=uuid4()), test_tenant, eligibility, payments, notifier)

    await _book(test_db, make_request("12:00", "13:00", chef=uuid4()), test_tenant, eligibility, payments, notifier)
    assert await _count(test_db, Reservation) == 2


@pytest.mark.asyncio
async def test_double_booked_rental_equipment_rejected(
    test_db, test_tenant, make_request, rental_mixer, eligibility, payments, notifier,
):
    mixer = [EquipmentItemRequest(listing_id=rental_mixer.id)]
    await _book(test_db, make_request("09:00", "10:00", equipment_items=mixer), test_tenant, eligibility, payments, notifier)

    with pytest.raises(SlotUnavailable):
        await _book(
            test_db,
            make_request("14:00", "15:00", equipment_items=mixer, chef=uuid4()),
            test_tenant,
            eligibility,
            payments,
            notifier,
        )

    assert await _count(test_db, Reservation) == 1
    assert await _count(test_db, EquipmentReservation) == 1


@pytest.mark.asyncio
async def test_unknown_listing_is_not_found(test_db, test_tenant, make_request, eligibility, payments, notifier):
    request = make_request(equipment_items=[EquipmentItemRequest(listing_id=uuid4())])

    with pytest.raises(ResourceNotFound):
        await _book(test_db, request, test_tenant, eligibility, payments, notifier)


@pytest.mark.asyncio
async def test_payment_session_failure_persists_nothing(
    test_db, test_tenant, make_request, daily_storage, eligibility, payments, notifier,
):
    payments.fail_sessions = True
    request = make_request(storage_items=[StorageItemRequest(
        listing_id=daily_storage.id, start_date=MONDAY, end_date=date(2025, 1, 8),
    )])

    with pytest.raises(PaymentSessionFailed) as exc_info:
        await _book(test_db, request, test_tenant, eligibility, payments, notifier)

    assert exc_info.value.retryable is True
    assert await _count(test_db, Reservation) == 0
    assert await _count(test_db, StorageReservation) == 0


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_booking(test_db, test_tenant, make_request, eligibility, payments, notifier):
    notifier.fail = True

    result = await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)

    assert result.reservation.id is not None
    assert await _count(test_db, Reservation) == 1


@pytest.mark.asyncio
async def test_confirm_payment_confirms_children(
    test_db, test_tenant, make_request, daily_storage, eligibility, payments, notifier,
):
    request = make_request(storage_items=[StorageItemRequest(
        listing_id=daily_storage.id, start_date=MONDAY, end_date=date(2025, 1, 8),
    )])
    result = await _book(test_db, request, test_tenant, eligibility, payments, notifier)
    booking_id = result.reservation.id
    payment = CapturedPayment(
        external_transaction_id="pi_123",
        payment_session_token=result.payment_session_token,
        amount_cents=result.breakdown.total,
        processor_fee_cents=300,
        platform_fee_cents=500,
    )

    detail = await booking_engine.confirm_booking_payment(test_db, test_tenant.id, booking_id, payment, notifier)

    assert detail.reservation.status == ReservationStatus.CONFIRMED.value
    assert detail.reservation.payment_status == PaymentStatus.PAID.value
    assert [s.status for s in detail.storage] == [ReservationStatus.CONFIRMED.value]
    assert [s.payment_status for s in detail.storage] == [PaymentStatus.PAID.value]

    transaction = await test_db.scalar(select(PaymentTransaction).where(PaymentTransaction.booking_id == booking_id))
    assert transaction.manager_revenue_cents == result.breakdown.total - 800

    # Confirming twice records one transaction
    await booking_engine.confirm_booking_payment(test_db, test_tenant.id, booking_id, payment)
    assert await _count(test_db, PaymentTransaction) == 1
    assert "booking.confirmed" in [event for event, _ in notifier.events]


@pytest.mark.asyncio
async def test_confirmation_must_match_session_and_cover_total(
    test_db, test_tenant, make_request, eligibility, payments, notifier,
):
    result = await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)
    booking_id = result.reservation.id
    token = result.payment_session_token
    total = result.breakdown.total

    with pytest.raises(PaymentMismatch):
        await booking_engine.confirm_booking_payment(
            test_db,
            test_tenant.id,
            booking_id,
            CapturedPayment(external_transaction_id="pi_short", payment_session_token=token, amount_cents=1),
        )

    with pytest.raises(PaymentMismatch):
        await booking_engine.confirm_booking_payment(
            test_db,
            test_tenant.id,
            booking_id,
            CapturedPayment(external_transaction_id="pi_other", payment_session_token="cs_other", amount_cents=total),
        )

    with pytest.raises(PaymentMismatch):
        await booking_engine.confirm_booking_payment(
            test_db,
            test_tenant.id,
            booking_id,
            CapturedPayment(external_transaction_id="pi_anon", amount_cents=total),
        )

    detail = await booking_engine.get_booking(test_db, test_tenant.id, booking_id)
    assert detail.reservation.status == ReservationStatus.PENDING.value
    assert await _count(test_db, PaymentTransaction) == 0

    detail = await booking_engine.confirm_booking_payment(
        test_db,
        test_tenant.id,
        booking_id,
        CapturedPayment(external_transaction_id="pi_full", payment_session_token=token, amount_cents=total),
    )
    assert detail.reservation.status == ReservationStatus.CONFIRMED.value


@pytest.mark.asyncio
async def test_lost_commit_expires_the_payment_session(
    test_db, test_tenant, make_request, eligibility, payments, notifier, monkeypatch,
):
    async def losing_commit():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: reservations.id"))

    monkeypatch.setattr(test_db, "commit", losing_commit)

    with pytest.raises(SlotUnavailable):
        await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)

    assert payments.expired == [payments.sessions[0][0]]
    assert await _count(test_db, Reservation) == 0


@pytest.mark.asyncio
async def test_failed_payment_releases_the_slot(test_db, test_tenant, make_request, eligibility, payments, notifier):
    result = await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)

    detail = await booking_engine.fail_booking_payment(test_db, test_tenant.id, result.reservation.id)
    assert detail.reservation.status == ReservationStatus.CANCELLED.value
    assert detail.reservation.payment_status == PaymentStatus.FAILED.value

    # Same window is bookable again, and the cancelled booking can no longer be paid
    await _book(test_db, make_request(chef=uuid4()), test_tenant, eligibility, payments, notifier)
    with pytest.raises(SlotUnavailable):
        await booking_engine.confirm_booking_payment(
            test_db,
            test_tenant.id,
            detail.reservation.id,
            CapturedPayment(external_transaction_id="pi_late", amount_cents=100),
        )


@pytest.mark.asyncio
async def test_release_unpaid_bookings(test_db, test_tenant, make_request, eligibility, payments, notifier):
    result = await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)
    booking_id = result.reservation.id

    assert await booking_engine.release_unpaid_bookings(test_db, datetime.utcnow() - timedelta(hours=1)) == 0
    assert await booking_engine.release_unpaid_bookings(test_db, datetime.utcnow() + timedelta(minutes=1)) == 1

    detail = await booking_engine.get_booking(test_db, test_tenant.id, booking_id)
    assert detail.reservation.status == ReservationStatus.CANCELLED.value
    assert detail.reservation.cancellation_reason == "payment_timeout"


@pytest.mark.asyncio
async def test_manager_block_prevents_chef_booking(
    test_db, test_tenant, test_kitchen, make_request, eligibility, payments, notifier,
):
    block = await booking_engine.create_manager_block(
        test_db, test_tenant.id, test_kitchen.id, MONDAY, "09:00", "12:00", reason="Deep clean"
    )
    assert block.owner_id is None
    assert block.status == ReservationStatus.CONFIRMED.value
    assert block.notes == "Deep clean"

    with pytest.raises(SlotUnavailable):
        await _book(test_db, make_request("11:00", "12:00"), test_tenant, eligibility, payments, notifier)


@pytest.mark.asyncio
async def test_bookings_are_tenant_scoped(test_db, persist, make_request, test_tenant, eligibility, payments, notifier):
    other_tenant = await persist(Tenant(id=uuid4(), name="Other Commissary"))
    result = await _book(test_db, make_request(), test_tenant, eligibility, payments, notifier)
    booking_id = result.reservation.id

    with pytest.raises(ResourceNotFound):
        await booking_engine.get_booking(test_db, other_tenant.id, booking_id)

    # The kitchen belongs to another tenant too
    with pytest.raises(ResourceNotFound):
        await _book(test_db, make_request(chef=uuid4()), other_tenant, eligibility, payments, notifier)


@pytest.mark.asyncio
async def test_concurrent_requests_for_one_window(tmp_path, eligibility, payments, notifier):
    """Parallel bookings of the same window: exactly one wins, the rest see SlotUnavailable"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}", connect_args={"timeout": 30})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    tenant = Tenant(id=uuid4(), name="Race Kitchen Co")
    kitchen = Kitchen(id=uuid4(), tenant_id=tenant.id, name="Race", hourly_rate_cents=1000, currency="CAD")
    async with session_factory() as db:
        db.add_all([
            tenant,
            kitchen,
            WeeklyAvailability(kitchen_id=kitchen.id, day_of_week=1, start_minute=540, end_minute=1020),
        ])
        await db.commit()

    attempts = 8

    async def attempt():
        request = BookingCreate(
            chef_id=uuid4(),
            kitchen_id=kitchen.id,
            date=MONDAY,
            start_time="10:00",
            end_time="12:00",
        )
        async with session_factory() as db:
            try:
                await booking_engine.create_booking(
                    db, request, request.chef_id, tenant.id, eligibility, payments, notifier
                )
                return "booked"
            except SlotUnavailable:
                return "unavailable"

    try:
        outcomes = await asyncio.gather(*[attempt() for _ in range(attempts)])

        assert outcomes.count("booked") == 1
        assert outcomes.count("unavailable") == attempts - 1

        async with session_factory() as db:
            rows = (await db.execute(select(Reservation))).scalars().all()
        assert len(rows) == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_random_concurrent_creates_and_cancels_never_overlap(tmp_path, eligibility, payments, notifier):
    """Seeded rounds of overlapping requests and cancellations; live bookings stay disjoint"""
    rng = random.Random(20250106)
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'random.db'}", connect_args={"timeout": 30})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    tenant = Tenant(id=uuid4(), name="Random Kitchen Co")
    kitchen = Kitchen(id=uuid4(), tenant_id=tenant.id, name="Shared", hourly_rate_cents=1000, currency="CAD")
    async with session_factory() as db:
        db.add_all([
            tenant,
            kitchen,
            WeeklyAvailability(kitchen_id=kitchen.id, day_of_week=1, start_minute=540, end_minute=1020),
        ])
        await db.commit()

    def random_window():
        start = rng.randrange(540, 990, 30)
        end = min(start + rng.choice([30, 60, 90, 120, 180]), 1020)
        return format_time(start), format_time(end)

    async def create(window):
        request = BookingCreate(
            chef_id=uuid4(),
            kitchen_id=kitchen.id,
            date=MONDAY,
            start_time=window[0],
            end_time=window[1],
        )
        async with session_factory() as db:
            try:
                result = await booking_engine.create_booking(
                    db, request, request.chef_id, tenant.id, eligibility, payments, notifier
                )
                return result.reservation.id
            except SlotUnavailable:
                return None

    async def cancel(booking_id):
        async with session_factory() as db:
            await cancel_booking(db, tenant.id, booking_id, reason="random cancel")
        return None

    live = []
    booked = rejected = 0
    try:
        for _ in range(6):
            to_cancel = rng.sample(live, k=len(live) // 2)
            for booking_id in to_cancel:
                live.remove(booking_id)

            creates = [create(random_window()) for _ in range(8)]
            cancels = [cancel(booking_id) for booking_id in to_cancel]
            jobs = creates + cancels
            rng.shuffle(jobs)
            outcomes = await asyncio.gather(*jobs)

            new_ids = [outcome for outcome in outcomes if outcome is not None]
            booked += len(new_ids)
            rejected += len(creates) - len(new_ids)
            live.extend(new_ids)

        async with session_factory() as db:
            rows = (await db.execute(
                select(Reservation).where(Reservation.status != ReservationStatus.CANCELLED.value)
            )).scalars().all()
    finally:
        await engine.dispose()

    assert booked > 0
    assert rejected > 0
    assert sorted(row.id for row in rows) == sorted(live)
    for first, second in itertools.combinations(rows, 2):
        assert not ranges_overlap(
            first.start_minute, first.end_minute, second.start_minute, second.end_minute
        )
