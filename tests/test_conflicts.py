"""Tests for reservation conflict detection"""

from datetime import date
from uuid import uuid4

import pytest

from app.engine.conflicts import (
    ranges_overlap,
    find_kitchen_conflicts,
    find_storage_conflicts,
    ensure_kitchen_available,
    ensure_storage_available,
)
from app.engine.errors import SlotUnavailable
from app.models.reservation import Reservation, StorageReservation, ReservationStatus

MONDAY = date(2025, 1, 6)


def test_ranges_overlap_is_half_open():
    assert ranges_overlap(600, 720, 660, 780)
    assert ranges_overlap(600, 720, 540, 1020)
    assert not ranges_overlap(600, 720, 720, 780)
    assert not ranges_overlap(600, 720, 480, 600)
    assert ranges_overlap(date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 4), date(2025, 1, 8))
    assert not ranges_overlap(date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 5), date(2025, 1, 8))


@pytest.fixture
async def existing_booking(persist, test_tenant, test_kitchen):
    """Confirmed 10:00-12:00 Monday booking"""
    return await persist(Reservation(
        id=uuid4(),
        tenant_id=test_tenant.id,
        kitchen_id=test_kitchen.id,
        owner_id=uuid4(),
        booking_date=MONDAY,
        start_minute=600,
        end_minute=720,
        status=ReservationStatus.CONFIRMED.value,
    ))


@pytest.mark.asyncio
async def test_kitchen_conflicts(test_db, test_kitchen, existing_booking):
    overlapping = await find_kitchen_conflicts(test_db, test_kitchen.id, MONDAY, 660, 780)
    assert [r.id for r in overlapping] == [existing_booking.id]

    # Touching windows and other dates are free
    assert await find_kitchen_conflicts(test_db, test_kitchen.id, MONDAY, 720, 780) == []
    assert await find_kitchen_conflicts(test_db, test_kitchen.id, MONDAY, 540, 600) == []
    assert await find_kitchen_conflicts(test_db, test_kitchen.id, date(2025, 1, 7), 600, 720) == []

    # A reservation never conflicts with itself
    assert await find_kitchen_conflicts(
        test_db, test_kitchen.id, MONDAY, 600, 720, exclude_reservation_id=existing_booking.id
    ) == []


@pytest.mark.asyncio
async def test_ensure_kitchen_available_raises(test_db, test_kitchen, existing_booking):
    with pytest.raises(SlotUnavailable) as exc_info:
        await ensure_kitchen_available(test_db, test_kitchen.id, MONDAY, 540, 660)

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_cancelled_reservation_frees_the_window(test_db, persist, test_tenant, test_kitchen):
    await persist(Reservation(
        tenant_id=test_tenant.id,
        kitchen_id=test_kitchen.id,
        booking_date=MONDAY,
        start_minute=600,
        end_minute=720,
        status=ReservationStatus.CANCELLED.value,
    ))

    await ensure_kitchen_available(test_db, test_kitchen.id, MONDAY, 600, 720)


@pytest.mark.asyncio
async def test_storage_conflicts_use_exclusive_end_dates(test_db, persist, daily_storage, existing_booking):
    held = await persist(StorageReservation(
        id=uuid4(),
        storage_listing_id=daily_storage.id,
        parent_booking_id=existing_booking.id,
        start_date=date(2025, 1, 6),
        end_date=date(2025, 1, 10),
        status=ReservationStatus.CONFIRMED.value,
    ))

    conflicts = await find_storage_conflicts(test_db, daily_storage.id, date(2025, 1, 9), date(2025, 1, 12))
    assert [s.id for s in conflicts] == [held.id]

    # Back-to-back rentals share a boundary date without conflicting
    await ensure_storage_available(test_db, daily_storage.id, date(2025, 1, 10), date(2025, 1, 14))
    await ensure_storage_available(test_db, daily_storage.id, date(2025, 1, 1), date(2025, 1, 6))

    with pytest.raises(SlotUnavailable):
        await ensure_storage_available(test_db, daily_storage.id, date(2025, 1, 1), date(2025, 1, 7))
