"""Tenant-scoped loaders shared by engine operations"""

from typing import Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.errors import ResourceNotFound
from app.models.kitchen import Kitchen
from app.models.listing import StorageListing, EquipmentListing
from app.models.reservation import Reservation, StorageReservation
from app.models.extension import PendingExtension
from app.models.overstay import OverstayRecord


async def get_kitchen(db: AsyncSession, tenant_id: UUID, kitchen_id: UUID, active_only: bool = True) -> Kitchen:
    query = select(Kitchen).where(Kitchen.id == kitchen_id, Kitchen.tenant_id == tenant_id)
    if active_only:
        query = query.where(Kitchen.is_active.is_(True))

    result = await db.execute(query)
    kitchen = result.scalar_one_or_none()
    if not kitchen:
        raise ResourceNotFound(f"Kitchen {kitchen_id} not found")
    return kitchen


async def get_storage_listing(db: AsyncSession, kitchen_id: UUID, listing_id: UUID) -> StorageListing:
    result = await db.execute(
        select(StorageListing).where(
            StorageListing.id == listing_id,
            StorageListing.kitchen_id == kitchen_id,
            StorageListing.is_active.is_(True),
        )
    )
    listing = result.scalar_one_or_none()
    if not listing:
        raise ResourceNotFound(f"Storage listing {listing_id} not found")
    return listing


async def get_equipment_listing(db: AsyncSession, kitchen_id: UUID, listing_id: UUID) -> EquipmentListing:
    result = await db.execute(
        select(EquipmentListing).where(
            EquipmentListing.id == listing_id,
            EquipmentListing.kitchen_id == kitchen_id,
            EquipmentListing.is_active.is_(True),
        )
    )
    listing = result.scalar_one_or_none()
    if not listing:
        raise ResourceNotFound(f"Equipment listing {listing_id} not found")
    return listing


async def get_reservation(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> Reservation:
    result = await db.execute(
        select(Reservation).where(
            Reservation.id == booking_id,
            Reservation.tenant_id == tenant_id,
        )
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise ResourceNotFound(f"Booking {booking_id} not found")
    return reservation


async def get_storage_reservation(
    db: AsyncSession, tenant_id: UUID, storage_reservation_id: UUID
) -> Tuple[StorageReservation, StorageListing]:
    result = await db.execute(
        select(StorageReservation, StorageListing)
        .join(StorageListing, StorageListing.id == StorageReservation.storage_listing_id)
        .join(Reservation, Reservation.id == StorageReservation.parent_booking_id)
        .where(
            StorageReservation.id == storage_reservation_id,
            Reservation.tenant_id == tenant_id,
        )
    )
    row = result.first()
    if not row:
        raise ResourceNotFound(f"Storage reservation {storage_reservation_id} not found")
    return row[0], row[1]


async def get_extension(
    db: AsyncSession, tenant_id: UUID, extension_id: UUID
) -> Tuple[PendingExtension, StorageReservation]:
    result = await db.execute(
        select(PendingExtension, StorageReservation)
        .join(StorageReservation, StorageReservation.id == PendingExtension.storage_reservation_id)
        .join(Reservation, Reservation.id == StorageReservation.parent_booking_id)
        .where(
            PendingExtension.id == extension_id,
            Reservation.tenant_id == tenant_id,
        )
    )
    row = result.first()
    if not row:
        raise ResourceNotFound(f"Extension {extension_id} not found")
    return row[0], row[1]


async def get_overstay_record(
    db: AsyncSession, tenant_id: UUID, record_id: UUID
) -> Tuple[OverstayRecord, StorageReservation]:
    result = await db.execute(
        select(OverstayRecord, StorageReservation)
        .join(StorageReservation, StorageReservation.id == OverstayRecord.storage_reservation_id)
        .join(Reservation, Reservation.id == StorageReservation.parent_booking_id)
        .where(
            OverstayRecord.id == record_id,
            Reservation.tenant_id == tenant_id,
        )
    )
    row = result.first()
    if not row:
        raise ResourceNotFound(f"Overstay record {record_id} not found")
    return row[0], row[1]
