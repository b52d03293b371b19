"""
Availability resolution and slot generation.

Times of day are integer minutes since midnight and every range is half-open,
[start, end). A date override replaces the weekly schedule for its date, and
date blocks are cut out of whatever the schedule leaves open.
"""

from datetime import date
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.conflicts import ranges_overlap, CANCELLED
from app.models.kitchen import WeeklyAvailability, DateOverride, DateBlock
from app.models.reservation import Reservation

MINUTES_PER_DAY = 24 * 60


class TimeRange(NamedTuple):
    start: int
    end: int


def parse_time(value: str) -> int:
    """Parse "HH:MM" into minutes since midnight ("24:00" is end of day)"""
    try:
        hours, minutes = value.split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")

    if not (0 <= minutes < 60) or not (0 <= hours <= 24) or (hours == 24 and minutes):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes


def format_time(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def weekday_index(day: date) -> int:
    """Day of week with Sunday = 0"""
    return (day.weekday() + 1) % 7


def subtract_ranges(ranges: Iterable[TimeRange], cuts: Iterable[TimeRange]) -> List[TimeRange]:
    """Set difference of two range lists, sorted and non-overlapping"""
    remaining = sorted(TimeRange(r.start, r.end) for r in ranges)
    for cut in sorted(TimeRange(c.start, c.end) for c in cuts):
        pieces = []
        for r in remaining:
            if not ranges_overlap(r.start, r.end, cut.start, cut.end):
                pieces.append(r)
                continue
            if r.start < cut.start:
                pieces.append(TimeRange(r.start, cut.start))
            if cut.end < r.end:
                pieces.append(TimeRange(cut.end, r.end))
        remaining = pieces
    return remaining


def compute_open_ranges(
    weekly: Sequence[WeeklyAvailability],
    override: Optional[DateOverride],
    blocks: Sequence[DateBlock],
    day: date,
) -> List[TimeRange]:
    """Open ranges for one date from already-loaded schedule rows"""
    if override is not None:
        if (
            override.is_closed
            or override.start_minute is None
            or override.end_minute is None
            or override.start_minute >= override.end_minute
        ):
            return []
        base = [TimeRange(override.start_minute, override.end_minute)]
    else:
        weekday = weekday_index(day)
        row = next((w for w in weekly if w.day_of_week == weekday), None)
        # A missing or unavailable weekday is closed
        if row is None or not row.is_available or row.start_minute >= row.end_minute:
            return []
        base = [TimeRange(row.start_minute, row.end_minute)]

    return subtract_ranges(base, [TimeRange(b.start_minute, b.end_minute) for b in blocks])


def window_fits(open_ranges: Iterable[TimeRange], start_minute: int, end_minute: int) -> bool:
    """True if [start_minute, end_minute) lies inside a single open range"""
    return any(r.start <= start_minute and end_minute <= r.end for r in open_ranges)


async def resolve_open_ranges(db: AsyncSession, kitchen_id: UUID, day: date) -> List[TimeRange]:
    """Load schedule rows for a kitchen and resolve its open ranges on a date"""
    override_result = await db.execute(
        select(DateOverride).where(
            DateOverride.kitchen_id == kitchen_id,
            DateOverride.date == day,
        )
    )
    override = override_result.scalar_one_or_none()

    weekly = []
    if override is None:
        weekly_result = await db.execute(
            select(WeeklyAvailability).where(
                WeeklyAvailability.kitchen_id == kitchen_id,
                WeeklyAvailability.day_of_week == weekday_index(day),
            )
        )
        weekly = list(weekly_result.scalars().all())

    blocks_result = await db.execute(
        select(DateBlock).where(
            DateBlock.kitchen_id == kitchen_id,
            DateBlock.date == day,
        )
    )
    blocks = list(blocks_result.scalars().all())

    return compute_open_ranges(weekly, override, blocks, day)


class SlotSequence:
    """
    Bookable start minutes for one date.

    Candidates step through each open range by the granularity and a candidate
    is kept only if [start, start + granularity) fits the range and overlaps
    no busy range. Iterating again yields the same slots.
    """

    def __init__(
        self,
        open_ranges: Iterable[TimeRange],
        busy_ranges: Iterable[TimeRange],
        granularity_minutes: int,
        not_before_minute: Optional[int] = None,
    ):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        self.open_ranges = tuple(open_ranges)
        self.busy_ranges = tuple(busy_ranges)
        self.granularity_minutes = granularity_minutes
        self.not_before_minute = not_before_minute

    def __iter__(self) -> Iterator[int]:
        step = self.granularity_minutes
        for open_range in self.open_ranges:
            candidate = open_range.start
            while candidate + step <= open_range.end:
                if self._is_free(candidate, candidate + step):
                    yield candidate
                candidate += step

    def _is_free(self, start: int, end: int) -> bool:
        if self.not_before_minute is not None and start < self.not_before_minute:
            return False
        return not any(ranges_overlap(start, end, b.start, b.end) for b in self.busy_ranges)

    def __repr__(self):
        return (
            f"SlotSequence(open={list(self.open_ranges)}, busy={list(self.busy_ranges)}, "
            f"granularity={self.granularity_minutes})"
        )


async def list_available_slots(
    db: AsyncSession,
    kitchen_id: UUID,
    day: date,
    granularity_minutes: int,
    not_before_minute: Optional[int] = None,
) -> SlotSequence:
    """Advisory slot listing; bookings re-validate the window when they are written"""
    open_ranges = await resolve_open_ranges(db, kitchen_id, day)

    result = await db.execute(
        select(Reservation.start_minute, Reservation.end_minute).where(
            Reservation.kitchen_id == kitchen_id,
            Reservation.booking_date == day,
            Reservation.status != CANCELLED,
        )
    )
    busy = [TimeRange(start, end) for start, end in result.all()]

    return SlotSequence(open_ranges, busy, granularity_minutes, not_before_minute)
