# backend/kitchen_booking/models/__init__.py
"""
SQLAlchemy models.

Importing this package registers every table on ``Base.metadata``.
"""

from .access import ChefKitchenApplication, ChefLocationAccess
from .booking import (
    BookingStatus,
    BookingType,
    EquipmentBooking,
    KitchenBooking,
    PaymentStatus,
    PendingExtensionStatus,
    PendingStorageExtension,
    StorageBooking,
)
from .listing import EquipmentAvailabilityType, EquipmentListing, PricingModel, StorageListing
from .location import Kitchen, KitchenAvailability, KitchenDateOverride, Location
from .overstay import OverstayEventSource, OverstayStatus, StorageOverstayHistory, StorageOverstayRecord
from .platform_config import PlatformSetting

__all__ = [
    "BookingStatus",
    "BookingType",
    "ChefKitchenApplication",
    "ChefLocationAccess",
    "EquipmentAvailabilityType",
    "EquipmentBooking",
    "EquipmentListing",
    "Kitchen",
    "KitchenAvailability",
    "KitchenBooking",
    "KitchenDateOverride",
    "Location",
    "OverstayEventSource",
    "OverstayStatus",
    "PaymentStatus",
    "PendingExtensionStatus",
    "PendingStorageExtension",
    "PlatformSetting",
    "PricingModel",
    "StorageBooking",
    "StorageListing",
    "StorageOverstayHistory",
    "StorageOverstayRecord",
]
