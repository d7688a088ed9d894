# backend/kitchen_booking/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .database import get_db
from .services import (
    get_access_gate,
    get_availability_service,
    get_booking_service,
    get_config_service,
    get_overstay_service,
    get_storage_extension_service,
)

__all__ = [
    # Database
    "get_db",
    # Services
    "get_access_gate",
    "get_availability_service",
    "get_booking_service",
    "get_config_service",
    "get_overstay_service",
    "get_storage_extension_service",
]
