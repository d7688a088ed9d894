# backend/kitchen_booking/models/booking.py
"""
Booking models for the kitchen booking engine.

A KitchenBooking is the unit of atomic creation: it is written together with
its StorageBooking and EquipmentBooking rows in one transaction. The addon
rows are the pricing source of truth; ``storage_items`` / ``equipment_items``
on the kitchen booking are a read-optimized summary mirrored from them.

All money columns are integers in cents.
"""

from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Awaiting payment
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"  # Terminal


class BookingType(str, Enum):
    CHEF = "chef"
    EXTERNAL = "external"
    MANAGER_BLOCKED = "manager_blocked"
    PORTAL = "portal"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PendingExtensionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class KitchenBooking(Base):
    """Reservation of a kitchen for a date and time range."""

    __tablename__ = "kitchen_bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    kitchen_id = Column(String(26), ForeignKey("kitchens.id"), nullable=False)
    # Null for manager-created or portal bookings
    chef_id = Column(String(26), nullable=True, index=True)

    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    selected_slots = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    booking_type = Column(String(20), nullable=False, default=BookingType.CHEF.value)
    special_notes = Column(Text, nullable=True)

    # Portal / external bookings
    created_by = Column(String(26), nullable=True)
    external_contact_name = Column(String, nullable=True)
    external_contact_email = Column(String, nullable=True)
    external_contact_phone = Column(String, nullable=True)
    external_contact_company = Column(String, nullable=True)

    # Pricing snapshot
    hourly_rate_cents = Column(Integer, nullable=False, default=0)
    duration_hours = Column(Numeric(6, 2), nullable=False, default=0)
    kitchen_price_cents = Column(Integer, nullable=False, default=0)
    subtotal_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    total_price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    # Denormalized addon summary (read cache of the addon rows)
    storage_items = Column(JSON, nullable=False, default=list)
    equipment_items = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    kitchen = relationship("Kitchen")
    storage_bookings = relationship("StorageBooking", back_populates="kitchen_booking")
    equipment_bookings = relationship("EquipmentBooking", back_populates="kitchen_booking")

    __table_args__ = (
        Index("ix_kitchen_bookings_kitchen_date", "kitchen_id", "booking_date"),
        CheckConstraint("total_price_cents >= 0", name="check_kitchen_booking_total_non_negative"),
    )

    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return (
            f"<KitchenBooking {self.id} kitchen={self.kitchen_id} "
            f"{self.booking_date} {self.start_time}-{self.end_time} {self.status}>"
        )


class StorageBooking(Base):
    """
    Storage rental linked to a kitchen booking.

    ``unit_price_cents`` and ``minimum_booking_duration`` are snapshotted from
    the listing so that extensions and overstay penalties price against the
    terms the chef originally booked.
    """

    __tablename__ = "storage_bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    storage_listing_id = Column(String(26), ForeignKey("storage_listings.id"), nullable=False)
    kitchen_booking_id = Column(
        String(26), ForeignKey("kitchen_bookings.id"), nullable=True, index=True
    )
    chef_id = Column(String(26), nullable=True, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    pricing_model = Column(String(20), nullable=False)
    unit_price_cents = Column(Integer, nullable=False, default=0)
    minimum_booking_duration = Column(Integer, nullable=False, default=1)
    total_price_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    storage_listing = relationship("StorageListing")
    kitchen_booking = relationship("KitchenBooking", back_populates="storage_bookings")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="check_storage_dates_ordered"),
    )


class EquipmentBooking(Base):
    """Equipment rental; only exists as part of a kitchen booking."""

    __tablename__ = "equipment_bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    equipment_listing_id = Column(String(26), ForeignKey("equipment_listings.id"), nullable=False)
    kitchen_booking_id = Column(
        String(26), ForeignKey("kitchen_bookings.id"), nullable=False, index=True
    )
    chef_id = Column(String(26), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    pricing_model = Column(String(20), nullable=False, default="session")
    total_price_cents = Column(Integer, nullable=False, default=0)
    damage_deposit_cents = Column(Integer, nullable=False, default=0)
    service_fee_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    equipment_listing = relationship("EquipmentListing")
    kitchen_booking = relationship("KitchenBooking", back_populates="equipment_bookings")


class PendingStorageExtension(Base):
    """
    Uncommitted extension awaiting external payment confirmation.

    Never mutates the storage booking until it is completed.
    """

    __tablename__ = "pending_storage_extensions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    storage_booking_id = Column(
        String(26), ForeignKey("storage_bookings.id"), nullable=False, index=True
    )
    new_end_date = Column(Date, nullable=False)
    extension_days = Column(Integer, nullable=False)
    extension_base_price_cents = Column(Integer, nullable=False)
    extension_service_fee_cents = Column(Integer, nullable=False)
    extension_total_price_cents = Column(Integer, nullable=False)
    payment_session_id = Column(String(255), nullable=False, unique=True)
    payment_intent_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=PendingExtensionStatus.PENDING.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    storage_booking = relationship("StorageBooking")
