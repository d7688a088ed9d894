# backend/kitchen_booking/models/overstay.py
"""
Overstay records for storage bookings whose end date has passed.

Detection only creates these records; money moves when a manager-approved
record is applied.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class OverstayStatus(str, Enum):
    GRACE_PERIOD = "grace_period"
    PENDING_REVIEW = "pending_review"
    PENALTY_APPROVED = "penalty_approved"
    PENALTY_WAIVED = "penalty_waived"
    CHARGED = "charged"
    RESOLVED = "resolved"


OPEN_OVERSTAY_STATUSES = (
    OverstayStatus.GRACE_PERIOD.value,
    OverstayStatus.PENDING_REVIEW.value,
)

# Overstays the chef still owes; any of these blocks new bookings.
UNPAID_OVERSTAY_STATUSES = (
    OverstayStatus.GRACE_PERIOD.value,
    OverstayStatus.PENDING_REVIEW.value,
    OverstayStatus.PENALTY_APPROVED.value,
)

IMMEDIATE_PAYMENT_STATUSES = (OverstayStatus.PENALTY_APPROVED.value,)


class StorageOverstayRecord(Base):
    """Reviewable penalty proposal for one storage booking and end date."""

    __tablename__ = "storage_overstay_records"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    storage_booking_id = Column(
        String(26), ForeignKey("storage_bookings.id"), nullable=False, index=True
    )
    idempotency_key = Column(String(100), nullable=False, unique=True)

    end_date = Column(Date, nullable=False)
    days_overdue = Column(Integer, nullable=False)
    days_charged = Column(Integer, nullable=False)
    daily_rate_cents = Column(Integer, nullable=False)
    penalty_multiplier = Column(Integer, nullable=False)
    calculated_penalty_cents = Column(Integer, nullable=False)
    final_penalty_cents = Column(Integer, nullable=True)
    proposed_end_date = Column(Date, nullable=False)

    status = Column(String(20), nullable=False, default=OverstayStatus.PENDING_REVIEW.value)
    reviewed_by = Column(String(26), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    waive_reason = Column(Text, nullable=True)
    manager_notes = Column(Text, nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=True)

    detected_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    storage_booking = relationship("StorageBooking")
    history = relationship(
        "StorageOverstayHistory",
        back_populates="overstay_record",
        cascade="all, delete-orphan",
        order_by="StorageOverstayHistory.created_at",
    )


class OverstayEventSource(str, Enum):
    SYSTEM = "system"
    CRON = "cron"
    MANAGER = "manager"


class StorageOverstayHistory(Base):
    """Audit trail entry for one event on an overstay record."""

    __tablename__ = "storage_overstay_history"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    overstay_record_id = Column(
        String(26), ForeignKey("storage_overstay_records.id"), nullable=False, index=True
    )
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    event_type = Column(String(50), nullable=False)
    event_source = Column(String(20), nullable=False, default=OverstayEventSource.SYSTEM.value)
    description = Column(Text, nullable=True)
    # ``metadata`` is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_by = Column(String(26), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        index=True,
    )

    overstay_record = relationship("StorageOverstayRecord", back_populates="history")
