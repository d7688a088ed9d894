# backend/kitchen_booking/models/listing.py
"""Storage and equipment listings offered as booking addons."""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class PricingModel(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY_FLAT = "monthly-flat"


class EquipmentAvailabilityType(str, Enum):
    INCLUDED = "included"  # Free with the kitchen, never booked
    RENTAL = "rental"


class StorageListing(Base):
    """A storage unit (dry, cold, freezer...) rentable alongside a kitchen."""

    __tablename__ = "storage_listings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    kitchen_id = Column(String(26), ForeignKey("kitchens.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    storage_type = Column(String(50), nullable=False, default="other")
    pricing_model = Column(String(20), nullable=False, default=PricingModel.DAILY.value)
    base_price_cents = Column(Integer, nullable=False)
    minimum_booking_duration = Column(Integer, nullable=False, default=1)
    currency = Column(String(3), nullable=False, default="CAD")
    is_active = Column(Boolean, nullable=False, default=True)

    # Overstay penalty overrides; NULL falls back to the location, then the platform.
    overstay_grace_period_days = Column(Integer, nullable=True)
    overstay_penalty_multiplier = Column(Integer, nullable=True)
    overstay_max_penalty_days = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("base_price_cents >= 0", name="check_storage_price_non_negative"),
        CheckConstraint("minimum_booking_duration >= 1", name="check_storage_min_duration"),
    )


class EquipmentListing(Base):
    """A piece of equipment; rentals are charged a flat rate per kitchen session."""

    __tablename__ = "equipment_listings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    kitchen_id = Column(String(26), ForeignKey("kitchens.id"), nullable=False, index=True)
    equipment_type = Column(String, nullable=False)
    availability_type = Column(
        String(20), nullable=False, default=EquipmentAvailabilityType.RENTAL.value
    )
    session_rate_cents = Column(Integer, nullable=False, default=0)
    damage_deposit_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("session_rate_cents >= 0", name="check_equipment_rate_non_negative"),
        CheckConstraint("damage_deposit_cents >= 0", name="check_equipment_deposit_non_negative"),
    )
