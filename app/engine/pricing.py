"""Price calculation for kitchen bookings and bundled storage/equipment"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import BaseModel

from app.config import settings
from app.engine.money import Money, round_money, percent_of
from app.models.kitchen import Kitchen
from app.models.listing import StorageListing, EquipmentListing, DurationUnit

UNIT_DAYS = {
    DurationUnit.DAILY.value: 1,
    DurationUnit.WEEKLY.value: 7,
    DurationUnit.MONTHLY.value: 30,
}


class LineItem(BaseModel):
    """One priced resource; deposit is kept out of the fee-bearing base"""
    kind: str  # kitchen, storage, equipment
    listing_id: Optional[UUID] = None
    quantity: Decimal  # hours, periods or sessions
    base_cents: int
    service_fee_cents: int = 0
    deposit_cents: int = 0

    @property
    def total_cents(self) -> int:
        return self.base_cents + self.service_fee_cents + self.deposit_cents


class PriceBreakdown(BaseModel):
    """Itemised price of a booking"""
    currency: str
    kitchen: LineItem
    storage: List[LineItem] = []
    equipment: List[LineItem] = []

    @property
    def items(self) -> List[LineItem]:
        return [self.kitchen, *self.storage, *self.equipment]

    @property
    def kitchen_subtotal(self) -> int:
        return self.kitchen.base_cents

    @property
    def storage_subtotals(self) -> List[int]:
        return [item.base_cents for item in self.storage]

    @property
    def equipment_subtotals(self) -> List[int]:
        return [item.base_cents for item in self.equipment]

    @property
    def service_fees(self) -> int:
        return sum(item.service_fee_cents for item in self.items)

    @property
    def deposits(self) -> int:
        return sum(item.deposit_cents for item in self.items)

    @property
    def total(self) -> int:
        return sum(item.base_cents for item in self.items) + self.service_fees + self.deposits


def unit_days(duration_unit: str) -> int:
    try:
        return UNIT_DAYS[duration_unit]
    except KeyError:
        raise ValueError(f"Unknown booking duration unit '{duration_unit}'")


def billable_periods(days: int, duration_unit: str) -> int:
    """Whole billing periods covering a number of days; partial periods round up"""
    size = unit_days(duration_unit)
    return -(-days // size)


def _fee_percent(service_fee_percent) -> Decimal:
    if service_fee_percent is None:
        return settings.service_fee_percent
    return Decimal(service_fee_percent)


def price_kitchen(
    kitchen: Kitchen,
    start_minute: int,
    end_minute: int,
    service_fee_percent: Optional[Decimal] = None,
) -> LineItem:
    """Hourly rate times duration, floored at the kitchen's minimum booking hours"""
    hours = Decimal(end_minute - start_minute) / Decimal(60)
    minimum_hours = Decimal(kitchen.minimum_booking_hours or 0)
    billable_hours = max(hours, minimum_hours)

    base = round_money(Decimal(kitchen.hourly_rate_cents) * billable_hours)
    return LineItem(
        kind="kitchen",
        listing_id=kitchen.id,
        quantity=billable_hours,
        base_cents=base,
        service_fee_cents=percent_of(base, _fee_percent(service_fee_percent)),
    )


def price_storage_days(
    listing: StorageListing,
    days: int,
    service_fee_percent: Optional[Decimal] = None,
) -> LineItem:
    periods = billable_periods(days, listing.booking_duration_unit)
    base = Money(listing.base_price_cents * periods)
    return LineItem(
        kind="storage",
        listing_id=listing.id,
        quantity=Decimal(periods),
        base_cents=base,
        service_fee_cents=percent_of(base, _fee_percent(service_fee_percent)),
    )


def price_storage(
    listing: StorageListing,
    start_date: date,
    end_date: date,
    service_fee_percent: Optional[Decimal] = None,
) -> LineItem:
    """Storage for [start_date, end_date)"""
    return price_storage_days(listing, (end_date - start_date).days, service_fee_percent)


def price_equipment(
    listing: EquipmentListing,
    service_fee_percent: Optional[Decimal] = None,
) -> LineItem:
    """Flat session rate; the damage deposit is added on top and carries no fee"""
    base = Money(listing.session_rate_cents)
    return LineItem(
        kind="equipment",
        listing_id=listing.id,
        quantity=Decimal(1),
        base_cents=base,
        service_fee_cents=percent_of(base, _fee_percent(service_fee_percent)),
        deposit_cents=listing.damage_deposit_cents or 0,
    )


def price_booking(
    kitchen: Kitchen,
    start_minute: int,
    end_minute: int,
    storage_items: Sequence[Tuple[StorageListing, date, date]] = (),
    equipment_listings: Sequence[EquipmentListing] = (),
    service_fee_percent: Optional[Decimal] = None,
) -> PriceBreakdown:
    """Full breakdown for a kitchen window plus bundled rentals"""
    return PriceBreakdown(
        currency=kitchen.currency or settings.default_currency,
        kitchen=price_kitchen(kitchen, start_minute, end_minute, service_fee_percent),
        storage=[
            price_storage(listing, start, end, service_fee_percent)
            for listing, start, end in storage_items
        ],
        equipment=[
            price_equipment(listing, service_fee_percent)
            for listing in equipment_listings
        ],
    )


def daily_rate(listing: StorageListing) -> Money:
    """Per-day equivalent of a storage listing's period price"""
    return round_money(Decimal(listing.base_price_cents) / Decimal(unit_days(listing.booking_duration_unit)))
