# backend/kitchen_booking/repositories/__init__.py
"""Data access layer."""

from .access_repository import AccessRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .extension_repository import PendingExtensionRepository
from .factory import RepositoryFactory
from .kitchen_repository import KitchenRepository
from .listing_repository import ListingRepository
from .overstay_repository import OverstayRepository
from .platform_config_repository import PlatformConfigRepository

__all__ = [
    "AccessRepository",
    "BaseRepository",
    "BookingRepository",
    "KitchenRepository",
    "ListingRepository",
    "OverstayRepository",
    "PendingExtensionRepository",
    "PlatformConfigRepository",
    "RepositoryFactory",
]
