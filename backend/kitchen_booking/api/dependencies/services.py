# backend/kitchen_booking/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets service instances bound to its own session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.access_gate import AccessGate
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.config_service import ConfigService
from ...services.overstay_service import OverstayService
from ...services.storage_extension_service import StorageExtensionService
from .database import get_db


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_config_service(db: Session = Depends(get_db)) -> ConfigService:
    return ConfigService(db)


def get_booking_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
    config_service: ConfigService = Depends(get_config_service),
) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session
        availability_service: Slot and time range validation
        config_service: Service fee configuration

    Returns:
        BookingService instance
    """
    return BookingService(db, availability_service=availability_service, config_service=config_service)


def get_storage_extension_service(
    db: Session = Depends(get_db),
    config_service: ConfigService = Depends(get_config_service),
) -> StorageExtensionService:
    return StorageExtensionService(db, config_service=config_service)


def get_overstay_service(
    db: Session = Depends(get_db),
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
    config_service: ConfigService = Depends(get_config_service),
) -> OverstayService:
    return OverstayService(db, extension_service=extension_service, config_service=config_service)


def get_access_gate(db: Session = Depends(get_db)) -> AccessGate:
    return AccessGate(db)
