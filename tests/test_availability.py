"""Tests for availability resolution and slot generation"""

from datetime import date
from uuid import uuid4

import pytest

from app.engine.availability import (
    SlotSequence,
    TimeRange,
    compute_open_ranges,
    format_time,
    list_available_slots,
    parse_time,
    resolve_open_ranges,
    subtract_ranges,
    weekday_index,
    window_fits,
)
from app.models.kitchen import WeeklyAvailability, DateOverride, DateBlock
from app.models.reservation import Reservation, ReservationStatus, BookingType

MONDAY = date(2025, 1, 6)

CHRISTMAS = date(2025, 12, 25)  # a Thursday


def _slots(minutes):
    return [format_time(minute) for minute in minutes]


def test_parse_and_format_time():
    assert parse_time("09:30") == 570
    assert parse_time("00:00") == 0
    assert parse_time("24:00") == 1440
    assert format_time(570) == "09:30"
    assert format_time(1440) == "24:00"

    for bad in ("9", "25:00", "24:30", "10:60", "ab:cd", ""):
        with pytest.raises(ValueError):
            parse_time(bad)


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2025, 1, 5)) == 0  # Sunday
    assert weekday_index(MONDAY) == 1
    assert weekday_index(CHRISTMAS) == 4
    assert weekday_index(date(2025, 1, 11)) == 6  # Saturday


def test_subtract_ranges_splits_and_trims():
    open_ranges = [TimeRange(540, 1020)]
    cuts = [TimeRange(600, 660), TimeRange(960, 1080)]

    assert subtract_ranges(open_ranges, cuts) == [
        TimeRange(540, 600),
        TimeRange(660, 960),
    ]


def test_compute_open_ranges_uses_weekly_rule():
    weekly = [WeeklyAvailability(day_of_week=1, start_minute=540, end_minute=1020, is_available=True)]

    assert compute_open_ranges(weekly, None, [], MONDAY) == [TimeRange(540, 1020)]
    # No rule for Tuesday means closed
    assert compute_open_ranges(weekly, None, [], date(2025, 1, 7)) == []


def test_compute_open_ranges_unavailable_weekday_is_closed():
    weekly = [WeeklyAvailability(day_of_week=1, start_minute=540, end_minute=1020, is_available=False)]

    assert compute_open_ranges(weekly, None, [], MONDAY) == []


def test_override_replaces_weekly_rule():
    weekly = [WeeklyAvailability(day_of_week=1, start_minute=540, end_minute=1020, is_available=True)]
    override = DateOverride(date=MONDAY, is_closed=False, start_minute=720, end_minute=840)

    assert compute_open_ranges(weekly, override, [], MONDAY) == [TimeRange(720, 840)]


def test_override_without_hours_is_closed():
    weekly = [WeeklyAvailability(day_of_week=1, start_minute=540, end_minute=1020, is_available=True)]
    override = DateOverride(date=MONDAY, is_closed=False, start_minute=None, end_minute=None)

    assert compute_open_ranges(weekly, override, [], MONDAY) == []


def test_multiple_blocks_in_one_day():
    weekly = [WeeklyAvailability(day_of_week=1, start_minute=540, end_minute=1020, is_available=True)]
    blocks = [
        DateBlock(date=MONDAY, start_minute=600, end_minute=660),
        DateBlock(date=MONDAY, start_minute=780, end_minute=840),
    ]

    assert compute_open_ranges(weekly, None, blocks, MONDAY) == [
        TimeRange(540, 600),
        TimeRange(660, 780),
        TimeRange(840, 1020),
    ]


def test_window_fits_single_range_only():
    open_ranges = [TimeRange(540, 600), TimeRange(660, 1020)]

    assert window_fits(open_ranges, 540, 600)
    assert window_fits(open_ranges, 700, 1020)
    assert not window_fits(open_ranges, 570, 690)
    assert not window_fits(open_ranges, 500, 560)


def test_slot_sequence_skips_busy_ranges():
    """Monday 09:00-17:00 with a 13:00-14:00 reservation at 30 minute granularity"""
    slots = SlotSequence([TimeRange(540, 1020)], [TimeRange(780, 840)], 30)

    assert _slots(slots) == [
        "09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00", "12:30",
        "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
    ]


def test_slot_sequence_is_restartable():
    slots = SlotSequence([TimeRange(540, 660)], [], 60)

    assert list(slots) == [540, 600]
    assert list(slots) == [540, 600]


def test_slot_sequence_drops_partial_tail_and_respects_not_before():
    slots = SlotSequence([TimeRange(540, 650)], [], 30, not_before_minute=600)

    assert _slots(slots) == ["10:00"]


def test_slot_sequence_rejects_non_positive_granularity():
    with pytest.raises(ValueError):
        SlotSequence([TimeRange(540, 600)], [], 0)


@pytest.mark.asyncio
async def test_slots_exclude_confirmed_reservation(test_db, persist, test_kitchen, test_tenant):
    """Scenario: existing 13:00-14:00 booking removes the 13:00 and 13:30 slots"""
    await persist(Reservation(
        tenant_id=test_tenant.id,
        kitchen_id=test_kitchen.id,
        booking_date=MONDAY,
        start_minute=780,
        end_minute=840,
        status=ReservationStatus.CONFIRMED.value,
        booking_type=BookingType.CHEF.value,
        owner_id=uuid4(),
    ))

    slots = await list_available_slots(test_db, test_kitchen.id, MONDAY, 30)
    listed = _slots(slots)

    assert "13:00" not in listed
    assert "13:30" not in listed
    assert listed[0] == "09:00"
    assert listed[7] == "12:30"
    assert listed[8] == "14:00"
    assert listed[-1] == "16:30"
    assert len(listed) == 14


@pytest.mark.asyncio
async def test_cancelled_reservations_do_not_block_slots(test_db, persist, test_kitchen, test_tenant):
    await persist(Reservation(
        tenant_id=test_tenant.id,
        kitchen_id=test_kitchen.id,
        booking_date=MONDAY,
        start_minute=540,
        end_minute=1020,
        status=ReservationStatus.CANCELLED.value,
    ))

    slots = await list_available_slots(test_db, test_kitchen.id, MONDAY, 60)

    assert len(list(slots)) == 8


@pytest.mark.asyncio
async def test_closed_override_empties_the_day(test_db, persist, test_kitchen):
    """Scenario: Christmas closed on a kitchen open every Thursday"""
    await persist(DateOverride(kitchen_id=test_kitchen.id, date=CHRISTMAS, is_closed=True, reason="Holiday"))

    assert await resolve_open_ranges(test_db, test_kitchen.id, CHRISTMAS) == []
    slots = await list_available_slots(test_db, test_kitchen.id, CHRISTMAS, 30)
    assert list(slots) == []


@pytest.mark.asyncio
async def test_date_blocks_are_cut_from_open_hours(test_db, persist, test_kitchen):
    await persist(
        DateBlock(kitchen_id=test_kitchen.id, date=MONDAY, start_minute=600, end_minute=660),
        DateBlock(kitchen_id=test_kitchen.id, date=MONDAY, start_minute=900, end_minute=960),
    )

    open_ranges = await resolve_open_ranges(test_db, test_kitchen.id, MONDAY)

    assert open_ranges == [
        TimeRange(540, 600),
        TimeRange(660, 900),
        TimeRange(960, 1020),
    ]
