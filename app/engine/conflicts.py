"""Conflict detection for kitchen, storage and equipment reservations"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.errors import SlotUnavailable
from app.models.reservation import (
    Reservation,
    StorageReservation,
    EquipmentReservation,
    ReservationStatus,
)

CANCELLED = ReservationStatus.CANCELLED.value


def ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Half-open overlap test; ranges that only touch do not conflict"""
    return a_start < b_end and a_end > b_start


async def find_kitchen_conflicts(
    db: AsyncSession,
    kitchen_id: UUID,
    booking_date: date,
    start_minute: int,
    end_minute: int,
    exclude_reservation_id: Optional[UUID] = None,
) -> List[Reservation]:
    """Non-cancelled kitchen reservations overlapping [start_minute, end_minute)"""
    query = select(Reservation).where(
        Reservation.kitchen_id == kitchen_id,
        Reservation.booking_date == booking_date,
        Reservation.status != CANCELLED,
        Reservation.start_minute < end_minute,
        Reservation.end_minute > start_minute,
    )
    if exclude_reservation_id:
        query = query.where(Reservation.id != exclude_reservation_id)

    result = await db.execute(query.order_by(Reservation.start_minute))
    return list(result.scalars().all())


async def find_storage_conflicts(
    db: AsyncSession,
    storage_listing_id: UUID,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[UUID] = None,
) -> List[StorageReservation]:
    """Non-cancelled storage reservations overlapping [start_date, end_date)"""
    query = select(StorageReservation).where(
        StorageReservation.storage_listing_id == storage_listing_id,
        StorageReservation.status != CANCELLED,
        StorageReservation.start_date < end_date,
        StorageReservation.end_date > start_date,
    )
    if exclude_reservation_id:
        query = query.where(StorageReservation.id != exclude_reservation_id)

    result = await db.execute(query.order_by(StorageReservation.start_date))
    return list(result.scalars().all())


async def find_equipment_conflicts(
    db: AsyncSession,
    equipment_listing_id: UUID,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[UUID] = None,
) -> List[EquipmentReservation]:
    """Non-cancelled equipment reservations overlapping [start_date, end_date)"""
    query = select(EquipmentReservation).where(
        EquipmentReservation.equipment_listing_id == equipment_listing_id,
        EquipmentReservation.status != CANCELLED,
        EquipmentReservation.start_date < end_date,
        EquipmentReservation.end_date > start_date,
    )
    if exclude_reservation_id:
        query = query.where(EquipmentReservation.id != exclude_reservation_id)

    result = await db.execute(query.order_by(EquipmentReservation.start_date))
    return list(result.scalars().all())


async def ensure_kitchen_available(
    db: AsyncSession,
    kitchen_id: UUID,
    booking_date: date,
    start_minute: int,
    end_minute: int,
    exclude_reservation_id: Optional[UUID] = None,
) -> None:
    conflicts = await find_kitchen_conflicts(
        db, kitchen_id, booking_date, start_minute, end_minute, exclude_reservation_id
    )
    if conflicts:
        raise SlotUnavailable(
            f"Kitchen is already booked on {booking_date.isoformat()} in the requested window"
        )


async def ensure_storage_available(
    db: AsyncSession,
    storage_listing_id: UUID,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[UUID] = None,
) -> None:
    conflicts = await find_storage_conflicts(
        db, storage_listing_id, start_date, end_date, exclude_reservation_id
    )
    if conflicts:
        raise SlotUnavailable(
            f"Storage {storage_listing_id} is already booked between "
            f"{start_date.isoformat()} and {end_date.isoformat()}"
        )


async def ensure_equipment_available(
    db: AsyncSession,
    equipment_listing_id: UUID,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[UUID] = None,
) -> None:
    conflicts = await find_equipment_conflicts(
        db, equipment_listing_id, start_date, end_date, exclude_reservation_id
    )
    if conflicts:
        raise SlotUnavailable(
            f"Equipment {equipment_listing_id} is already booked on {start_date.isoformat()}"
        )
