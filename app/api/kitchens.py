"""Kitchen, schedule and listing API endpoints"""

from datetime import date as date_type
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.api.bookings import build_booking_response
from app.config import settings
from app.database import get_db
from app.engine.availability import (
    format_time,
    list_available_slots,
    parse_time,
    resolve_open_ranges,
)
from app.engine.booking import create_manager_block
from app.engine.errors import InvalidDateRange, ResourceNotFound
from app.engine.lookups import get_kitchen
from app.models.kitchen import Kitchen, WeeklyAvailability, DateOverride, DateBlock
from app.models.listing import StorageListing, EquipmentListing
from app.models.tenant import Tenant
from app.schemas.booking import BookingResponse, ManagerBlockCreate
from app.schemas.kitchen import (
    AvailabilityResponse,
    DateBlockCreate,
    DateBlockResponse,
    DateOverrideResponse,
    DateOverrideUpsert,
    EquipmentListingCreate,
    EquipmentListingResponse,
    KitchenCreate,
    KitchenResponse,
    SlotsResponse,
    StorageListingCreate,
    StorageListingResponse,
    TimeRangeResponse,
    WeeklyAvailabilityEntry,
    WeeklyAvailabilityUpdate,
)

router = APIRouter()
logger = structlog.get_logger()


def _minutes(start_time: str, end_time: str):
    start_minute, end_minute = parse_time(start_time), parse_time(end_time)
    if start_minute >= end_minute:
        raise InvalidDateRange(f"Start time {start_time} must be before end time {end_time}")
    return start_minute, end_minute


@router.post("", response_model=KitchenResponse, status_code=201)
async def create_kitchen(
    tenant_id: UUID,
    kitchen_data: KitchenCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a kitchen for a tenant"""
    tenant = await db.get(Tenant, tenant_id)
    if not tenant or not tenant.is_active:
        raise ResourceNotFound(f"Tenant {tenant_id} not found")

    kitchen = Kitchen(
        tenant_id=tenant_id,
        name=kitchen_data.name,
        hourly_rate_cents=kitchen_data.hourly_rate_cents,
        currency=(kitchen_data.currency or settings.default_currency).upper(),
        minimum_booking_hours=kitchen_data.minimum_booking_hours,
    )
    db.add(kitchen)
    await db.commit()
    await db.refresh(kitchen)

    logger.info("Kitchen created", kitchen_id=str(kitchen.id), tenant_id=str(tenant_id))
    return kitchen


@router.put("/{kitchen_id}/weekly-availability", response_model=List[WeeklyAvailabilityEntry])
async def replace_weekly_availability(
    tenant_id: UUID,
    kitchen_id: UUID,
    schedule: WeeklyAvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Replace the recurring weekly schedule; weekdays left out are closed"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)

    days = [entry.day_of_week for entry in schedule.days]
    if len(days) != len(set(days)):
        raise InvalidDateRange("Each weekday may appear only once")

    rows = []
    for entry in schedule.days:
        start_minute, end_minute = _minutes(entry.start_time, entry.end_time)
        rows.append(WeeklyAvailability(
            kitchen_id=kitchen.id,
            day_of_week=entry.day_of_week,
            start_minute=start_minute,
            end_minute=end_minute,
            is_available=entry.is_available,
        ))

    await db.execute(delete(WeeklyAvailability).where(WeeklyAvailability.kitchen_id == kitchen.id))
    db.add_all(rows)
    await db.commit()

    return sorted(schedule.days, key=lambda entry: entry.day_of_week)


@router.put("/{kitchen_id}/date-overrides/{override_date}", response_model=DateOverrideResponse)
async def upsert_date_override(
    tenant_id: UUID,
    kitchen_id: UUID,
    override_date: date_type,
    override_data: DateOverrideUpsert,
    db: AsyncSession = Depends(get_db),
):
    """Close a date or give it custom hours, replacing the weekly schedule"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)

    start_minute = end_minute = None
    if not override_data.is_closed:
        if not override_data.start_time or not override_data.end_time:
            raise InvalidDateRange("Custom hours need both start_time and end_time")
        start_minute, end_minute = _minutes(override_data.start_time, override_data.end_time)

    result = await db.execute(
        select(DateOverride).where(
            DateOverride.kitchen_id == kitchen.id,
            DateOverride.date == override_date,
        )
    )
    override = result.scalar_one_or_none()
    if not override:
        override = DateOverride(kitchen_id=kitchen.id, date=override_date)
        db.add(override)

    override.is_closed = override_data.is_closed
    override.start_minute = start_minute
    override.end_minute = end_minute
    override.reason = override_data.reason
    await db.commit()

    logger.info(
        "Date override saved",
        kitchen_id=str(kitchen.id),
        date=override_date.isoformat(),
        is_closed=override.is_closed,
    )
    return DateOverrideResponse(
        kitchen_id=kitchen.id,
        date=override_date,
        is_closed=override.is_closed,
        start_time=format_time(start_minute) if start_minute is not None else None,
        end_time=format_time(end_minute) if end_minute is not None else None,
        reason=override.reason,
    )


@router.delete("/{kitchen_id}/date-overrides/{override_date}", status_code=204)
async def delete_date_override(
    tenant_id: UUID,
    kitchen_id: UUID,
    override_date: date_type,
    db: AsyncSession = Depends(get_db),
):
    """Remove a date override so the weekly schedule applies again"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)

    result = await db.execute(
        delete(DateOverride).where(
            DateOverride.kitchen_id == kitchen.id,
            DateOverride.date == override_date,
        )
    )
    if result.rowcount == 0:
        raise ResourceNotFound(f"No override for {override_date.isoformat()}")
    await db.commit()

    return Response(status_code=204)


@router.post("/{kitchen_id}/blocks", response_model=DateBlockResponse, status_code=201)
async def create_date_block(
    tenant_id: UUID,
    kitchen_id: UUID,
    block_data: DateBlockCreate,
    db: AsyncSession = Depends(get_db),
):
    """Block an interval of one date's open hours"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)
    start_minute, end_minute = _minutes(block_data.start_time, block_data.end_time)

    block = DateBlock(
        kitchen_id=kitchen.id,
        date=block_data.date,
        start_minute=start_minute,
        end_minute=end_minute,
        reason=block_data.reason,
    )
    db.add(block)
    await db.commit()

    return DateBlockResponse(
        id=block.id,
        kitchen_id=kitchen.id,
        date=block.date,
        start_time=block_data.start_time,
        end_time=block_data.end_time,
        reason=block.reason,
    )


@router.post("/{kitchen_id}/blocks/manager-booking", response_model=BookingResponse, status_code=201)
async def create_manager_booking(
    tenant_id: UUID,
    kitchen_id: UUID,
    block_data: ManagerBlockCreate,
    db: AsyncSession = Depends(get_db),
):
    """Hold a kitchen window as a manager reservation"""
    reservation = await create_manager_block(
        db,
        tenant_id,
        kitchen_id,
        block_data.date,
        block_data.start_time,
        block_data.end_time,
        block_data.reason,
    )
    return build_booking_response(reservation)


@router.get("/{kitchen_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    tenant_id: UUID,
    kitchen_id: UUID,
    date: date_type,
    db: AsyncSession = Depends(get_db),
):
    """Open ranges for a date after overrides and blocks"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)
    open_ranges = await resolve_open_ranges(db, kitchen.id, date)

    return AvailabilityResponse(
        kitchen_id=kitchen.id,
        date=date,
        open_ranges=[
            TimeRangeResponse(start_time=format_time(r.start), end_time=format_time(r.end))
            for r in open_ranges
        ],
    )


@router.get("/{kitchen_id}/slots", response_model=SlotsResponse)
async def get_slots(
    tenant_id: UUID,
    kitchen_id: UUID,
    date: date_type,
    granularity: Optional[int] = Query(None, ge=5, le=1440),
    not_before: Optional[str] = Query(None, description="HH:MM; slots starting earlier are skipped"),
    db: AsyncSession = Depends(get_db),
):
    """Bookable start times for a date"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)
    granularity = granularity or settings.slot_granularity_minutes

    not_before_minute = None
    if not_before:
        try:
            not_before_minute = parse_time(not_before)
        except ValueError as e:
            raise InvalidDateRange(str(e))

    slots = await list_available_slots(db, kitchen.id, date, granularity, not_before_minute)

    return SlotsResponse(
        kitchen_id=kitchen.id,
        date=date,
        granularity_minutes=granularity,
        slots=[format_time(minute) for minute in slots],
    )


@router.post("/{kitchen_id}/storage-listings", response_model=StorageListingResponse, status_code=201)
async def create_storage_listing(
    tenant_id: UUID,
    kitchen_id: UUID,
    listing_data: StorageListingCreate,
    db: AsyncSession = Depends(get_db),
):
    """Attach a storage listing to a kitchen"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)

    listing = StorageListing(kitchen_id=kitchen.id, **listing_data.model_dump())
    db.add(listing)
    await db.commit()
    await db.refresh(listing)

    return listing


@router.post("/{kitchen_id}/equipment-listings", response_model=EquipmentListingResponse, status_code=201)
async def create_equipment_listing(
    tenant_id: UUID,
    kitchen_id: UUID,
    listing_data: EquipmentListingCreate,
    db: AsyncSession = Depends(get_db),
):
    """Attach an equipment listing to a kitchen"""
    kitchen = await get_kitchen(db, tenant_id, kitchen_id)

    listing = EquipmentListing(kitchen_id=kitchen.id, **listing_data.model_dump())
    db.add(listing)
    await db.commit()
    await db.refresh(listing)

    return listing
