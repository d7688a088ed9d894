"""Business logic layer."""

from .access_gate import AccessGate
from .availability_service import AvailabilityService
from .base import BaseService
from .booking_service import BookingService
from .config_service import ConfigService
from .overstay_service import OverstayService
from .storage_extension_service import StorageExtensionService

__all__ = [
    "AccessGate",
    "AvailabilityService",
    "BaseService",
    "BookingService",
    "ConfigService",
    "OverstayService",
    "StorageExtensionService",
]
