"""Database models"""

from app.models.tenant import Tenant, KitchenAccessGrant
from app.models.kitchen import Kitchen, WeeklyAvailability, DateOverride, DateBlock
from app.models.listing import StorageListing, EquipmentListing
from app.models.reservation import Reservation, StorageReservation, EquipmentReservation
from app.models.extension import PendingExtension
from app.models.overstay import OverstayRecord
from app.models.payment import PaymentTransaction

__all__ = [
    "Tenant",
    "KitchenAccessGrant",
    "Kitchen",
    "WeeklyAvailability",
    "DateOverride",
    "DateBlock",
    "StorageListing",
    "EquipmentListing",
    "Reservation",
    "StorageReservation",
    "EquipmentReservation",
    "PendingExtension",
    "OverstayRecord",
    "PaymentTransaction",
]
