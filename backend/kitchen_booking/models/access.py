# backend/kitchen_booking/models/access.py
"""Location-level booking permissions for chefs."""

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
import ulid

from ..database import Base

APPLICATION_APPROVED = "approved"
MINIMUM_BOOKING_TIER = 2


class ChefLocationAccess(Base):
    """Authoritative grant allowing a chef to book any kitchen at a location."""

    __tablename__ = "chef_location_access"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    chef_id = Column(String(26), nullable=False, index=True)
    location_id = Column(String(26), nullable=False, index=True)
    granted_by = Column(String(26), nullable=False)
    granted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("chef_id", "location_id", name="uq_chef_location_access"),
    )


class ChefKitchenApplication(Base):
    """Tiered application a chef submits to a location."""

    __tablename__ = "chef_kitchen_applications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    chef_id = Column(String(26), nullable=False, index=True)
    location_id = Column(String(26), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="inReview")
    current_tier = Column(Integer, nullable=False, default=1)
    reviewed_by = Column(String(26), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def grants_booking_access(self) -> bool:
        return self.status == APPLICATION_APPROVED and (self.current_tier or 0) >= MINIMUM_BOOKING_TIER
