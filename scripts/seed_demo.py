#!/usr/bin/env python3
"""
Seed script to create a demo kitchen with schedule and listings
"""

import asyncio
import uuid
from decimal import Decimal


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from app.database import SessionLocal, engine, Base
    from app.models.tenant import Tenant, KitchenAccessGrant
    from app.models.kitchen import Kitchen, WeeklyAvailability
    from app.models.listing import StorageListing, EquipmentListing, DurationUnit, EquipmentAvailability

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo tenant already exists
        result = await db.execute(
            select(Tenant).where(Tenant.name == "Harbourside Commissary")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo tenant...")

        tenant = Tenant(
            id=uuid.uuid4(),
            name="Harbourside Commissary",
            timezone="America/St_Johns",
            overstay_grace_period_days=1,
        )
        db.add(tenant)
        await db.flush()

        print(f"Created tenant: {tenant.name} (ID: {tenant.id})")

        kitchen = Kitchen(
            id=uuid.uuid4(),
            tenant_id=tenant.id,
            name="Main Line Kitchen",
            hourly_rate_cents=5000,
            currency="CAD",
            minimum_booking_hours=Decimal("2"),
        )
        db.add(kitchen)
        await db.flush()

        # Monday to Friday 08:00-22:00, Saturday 09:00-17:00, closed Sunday
        for day in range(1, 6):
            db.add(WeeklyAvailability(
                kitchen_id=kitchen.id,
                day_of_week=day,
                start_minute=8 * 60,
                end_minute=22 * 60,
            ))
        db.add(WeeklyAvailability(
            kitchen_id=kitchen.id,
            day_of_week=6,
            start_minute=9 * 60,
            end_minute=17 * 60,
        ))

        storage_listings = [
            StorageListing(
                kitchen_id=kitchen.id,
                name="Walk-in Cooler Shelf",
                storage_type="cold",
                base_price_cents=1500,
                booking_duration_unit=DurationUnit.DAILY.value,
                minimum_booking_duration=1,
            ),
            StorageListing(
                kitchen_id=kitchen.id,
                name="Dry Storage Cage",
                storage_type="dry",
                base_price_cents=7000,
                booking_duration_unit=DurationUnit.WEEKLY.value,
                minimum_booking_duration=1,
            ),
            StorageListing(
                kitchen_id=kitchen.id,
                name="Chest Freezer",
                storage_type="freezer",
                base_price_cents=24000,
                booking_duration_unit=DurationUnit.MONTHLY.value,
                minimum_booking_duration=1,
                overstay_penalty_multiplier=Decimal("1.5"),
            ),
        ]
        for listing in storage_listings:
            db.add(listing)

        equipment_listings = [
            EquipmentListing(
                kitchen_id=kitchen.id,
                equipment_type="stand mixer",
                availability_type=EquipmentAvailability.RENTAL.value,
                session_rate_cents=2500,
                damage_deposit_cents=10000,
            ),
            EquipmentListing(
                kitchen_id=kitchen.id,
                equipment_type="convection oven",
                availability_type=EquipmentAvailability.INCLUDED.value,
            ),
        ]
        for item in equipment_listings:
            db.add(item)

        # Demo chef approved for this tenant
        chef_id = uuid.uuid4()
        db.add(KitchenAccessGrant(tenant_id=tenant.id, chef_id=chef_id))

        await db.commit()

        print(f"""
Demo data created successfully!

Tenant: {tenant.name}
  ID: {tenant.id}

Kitchen: {kitchen.name}
  ID: {kitchen.id}
  Rate: 50.00 CAD/hour, 2 hour minimum

Storage listings: {len(storage_listings)}
Equipment listings: {len(equipment_listings)}

Approved chef ID: {chef_id}
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
