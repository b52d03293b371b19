"""Pydantic schemas for request/response validation"""

from app.schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    CancelRequest,
    CancellationResponse,
    ManagerBlockCreate,
    RefundRequest,
    RefundResponse,
)
from app.schemas.kitchen import (
    KitchenCreate,
    KitchenResponse,
    WeeklyAvailabilityUpdate,
    DateOverrideUpsert,
    DateBlockCreate,
    AvailabilityResponse,
    SlotsResponse,
    StorageListingCreate,
    EquipmentListingCreate,
)
from app.schemas.payment import CapturedPayment, RefundResult, ChargeResult
from app.schemas.storage import (
    CheckoutCreate,
    CheckoutApproval,
    CheckoutDenial,
    ExtensionCreate,
    ExtensionResponse,
    OverstayRecordResponse,
    SweepResponse,
)
from app.schemas.tenant import (
    TenantCreate,
    TenantUpdate,
    TenantResponse,
    AccessGrantCreate,
    AccessGrantResponse,
)

__all__ = [
    "BookingCreate",
    "BookingCreateResponse",
    "BookingResponse",
    "CancelRequest",
    "CancellationResponse",
    "ManagerBlockCreate",
    "RefundRequest",
    "RefundResponse",
    "KitchenCreate",
    "KitchenResponse",
    "WeeklyAvailabilityUpdate",
    "DateOverrideUpsert",
    "DateBlockCreate",
    "AvailabilityResponse",
    "SlotsResponse",
    "StorageListingCreate",
    "EquipmentListingCreate",
    "CapturedPayment",
    "RefundResult",
    "ChargeResult",
    "CheckoutCreate",
    "CheckoutApproval",
    "CheckoutDenial",
    "ExtensionCreate",
    "ExtensionResponse",
    "OverstayRecordResponse",
    "SweepResponse",
    "TenantCreate",
    "TenantUpdate",
    "TenantResponse",
    "AccessGrantCreate",
    "AccessGrantResponse",
]
