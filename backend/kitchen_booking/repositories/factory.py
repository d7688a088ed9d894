# backend/kitchen_booking/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .access_repository import AccessRepository
    from .booking_repository import BookingRepository
    from .extension_repository import PendingExtensionRepository
    from .kitchen_repository import KitchenRepository
    from .listing_repository import ListingRepository
    from .overstay_repository import OverstayRepository
    from .platform_config_repository import PlatformConfigRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_kitchen_repository(db: Session) -> "KitchenRepository":
        """Create repository for kitchens and their schedules."""
        from .kitchen_repository import KitchenRepository

        return KitchenRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for kitchen bookings and addon rows."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_listing_repository(db: Session) -> "ListingRepository":
        from .listing_repository import ListingRepository

        return ListingRepository(db)

    @staticmethod
    def create_access_repository(db: Session) -> "AccessRepository":
        from .access_repository import AccessRepository

        return AccessRepository(db)

    @staticmethod
    def create_pending_extension_repository(db: Session) -> "PendingExtensionRepository":
        from .extension_repository import PendingExtensionRepository

        return PendingExtensionRepository(db)

    @staticmethod
    def create_overstay_repository(db: Session) -> "OverstayRepository":
        from .overstay_repository import OverstayRepository

        return OverstayRepository(db)

    @staticmethod
    def create_platform_config_repository(db: Session) -> "PlatformConfigRepository":
        from .platform_config_repository import PlatformConfigRepository

        return PlatformConfigRepository(db)
