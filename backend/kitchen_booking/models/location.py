# backend/kitchen_booking/models/location.py
"""
Location and kitchen models.

A Location owns Kitchens; each Kitchen owns its weekly availability windows
and its date-specific overrides. A date override always supersedes the weekly
window for that date.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Location(Base):
    """A managed site hosting one or more kitchens."""

    __tablename__ = "locations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    manager_id = Column(String(26), nullable=True)

    # Overstay penalty defaults for every kitchen here; NULL falls back to the platform.
    overstay_grace_period_days = Column(Integer, nullable=True)
    overstay_penalty_multiplier = Column(Integer, nullable=True)
    overstay_max_penalty_days = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    kitchens = relationship("Kitchen", back_populates="location")

    def __repr__(self) -> str:
        return f"<Location {self.id} {self.name}>"


class Kitchen(Base):
    """
    A bookable physical workspace belonging to a Location.

    Prices are integers in cents. ``booking_version`` is bumped by every
    booking creation transaction so that concurrent writers for the same
    kitchen serialize on this row.
    """

    __tablename__ = "kitchens"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    location_id = Column(String(26), ForeignKey("locations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    hourly_rate_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")
    minimum_booking_hours = Column(Integer, nullable=False, default=1)

    booking_version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    location = relationship("Location", back_populates="kitchens")
    availability_windows = relationship(
        "KitchenAvailability", back_populates="kitchen", cascade="all, delete-orphan"
    )
    date_overrides = relationship(
        "KitchenDateOverride", back_populates="kitchen", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("hourly_rate_cents >= 0", name="check_kitchen_rate_non_negative"),
        CheckConstraint("minimum_booking_hours >= 1", name="check_kitchen_min_hours"),
    )

    def __repr__(self) -> str:
        return f"<Kitchen {self.id} {self.name}>"


class KitchenAvailability(Base):
    """Weekly recurring open window for one day of the week (0 = Sunday)."""

    __tablename__ = "kitchen_availability"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    kitchen_id = Column(String(26), ForeignKey("kitchens.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    max_concurrent_bookings = Column(Integer, nullable=False, default=1)

    kitchen = relationship("Kitchen", back_populates="availability_windows")

    __table_args__ = (
        UniqueConstraint("kitchen_id", "day_of_week", name="uq_kitchen_availability_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_day_of_week_range"),
        CheckConstraint("max_concurrent_bookings >= 1", name="check_window_capacity"),
    )


class KitchenDateOverride(Base):
    """
    Date-specific override of the weekly schedule.

    ``is_available = False`` closes the kitchen for the whole date; otherwise
    the override's hours and capacity replace the weekly window.
    """

    __tablename__ = "kitchen_date_overrides"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    kitchen_id = Column(String(26), ForeignKey("kitchens.id"), nullable=False, index=True)
    specific_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    is_available = Column(Boolean, nullable=False, default=False)
    reason = Column(Text, nullable=True)
    max_concurrent_bookings = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    kitchen = relationship("Kitchen", back_populates="date_overrides")

    __table_args__ = (
        UniqueConstraint("kitchen_id", "specific_date", name="uq_kitchen_override_date"),
        CheckConstraint("max_concurrent_bookings >= 1", name="check_override_capacity"),
    )
