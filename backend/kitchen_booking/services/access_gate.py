# backend/kitchen_booking/services/access_gate.py
"""
Access Gate

Decides whether a chef may book kitchens at a location. The authoritative
permission is a ChefLocationAccess grant; an approved tier-2 application is
accepted too and materialized into a grant on first use.

A chef with unresolved overstay penalties is blocked from booking anywhere
until every penalty is charged or waived.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    AccessDeniedException,
    RepositoryException,
    ServiceException,
    UnpaidOverstayPenaltiesException,
)
from ..models.access import MINIMUM_BOOKING_TIER
from ..models.overstay import IMMEDIATE_PAYMENT_STATUSES
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

SYSTEM_GRANTOR = "system"


@dataclass(frozen=True)
class UnpaidPenalty:
    overstay_id: str
    storage_booking_id: str
    status: str
    days_overdue: int
    penalty_amount_cents: int

    @property
    def requires_immediate_payment(self) -> bool:
        return self.status in IMMEDIATE_PAYMENT_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overstay_id": self.overstay_id,
            "storage_booking_id": self.storage_booking_id,
            "status": self.status,
            "days_overdue": self.days_overdue,
            "penalty_amount_cents": self.penalty_amount_cents,
            "requires_immediate_payment": self.requires_immediate_payment,
        }


class AccessGate(BaseService):
    """Location-level booking permission checks."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_access_repository(db)
        self.overstay_repository = RepositoryFactory.create_overstay_repository(db)

    @BaseService.measure_operation("has_booking_access")
    def has_booking_access(self, chef_id: str, location_id: str) -> bool:
        """
        True when the chef holds a grant or an approved tier-2+ application.

        Must run before any booking write: materializing a grant commits the
        session.
        """
        if self.repository.get_grant(chef_id, location_id):
            return True

        application = self.repository.get_approved_application(chef_id, location_id)
        if application is None or not application.grants_booking_access():
            self.logger.info(
                "Booking access denied",
                extra={
                    "chef_id": chef_id,
                    "location_id": location_id,
                    "tier": getattr(application, "current_tier", None),
                    "required_tier": MINIMUM_BOOKING_TIER,
                },
            )
            return False

        self._materialize_grant(chef_id, location_id, application.reviewed_by)
        return True

    def require_booking_access(self, chef_id: str, location_id: str) -> None:
        if not self.has_booking_access(chef_id, location_id):
            raise AccessDeniedException(chef_id, location_id)

    def _materialize_grant(self, chef_id: str, location_id: str, reviewed_by: Optional[str]) -> None:
        # Cache write only; the approved application already grants access.
        try:
            with self.transaction():
                self.repository.upsert_grant(chef_id, location_id, granted_by=reviewed_by or SYSTEM_GRANTOR)
            self.log_operation("materialize_access_grant", chef_id=chef_id, location_id=location_id)
        except (ServiceException, RepositoryException) as e:
            self.logger.warning(
                f"Could not persist access grant for chef {chef_id}: {str(e)}",
                extra={"chef_id": chef_id, "location_id": location_id},
            )

    # ----- overstay penalties -----

    def get_unpaid_penalties(self, chef_id: str) -> List[UnpaidPenalty]:
        """Overstay penalties of the chef that are neither charged nor waived."""
        return [
            UnpaidPenalty(
                overstay_id=record.id,
                storage_booking_id=record.storage_booking_id,
                status=record.status,
                days_overdue=record.days_overdue,
                penalty_amount_cents=(
                    record.final_penalty_cents
                    if record.final_penalty_cents is not None
                    else record.calculated_penalty_cents
                ),
            )
            for record in self.overstay_repository.get_unpaid_for_chef(chef_id)
        ]

    def has_unpaid_penalties(self, chef_id: str) -> bool:
        return bool(self.overstay_repository.get_unpaid_for_chef(chef_id))

    @BaseService.measure_operation("require_no_unpaid_penalties")
    def require_no_unpaid_penalties(self, chef_id: str) -> None:
        """
        Raises:
            UnpaidOverstayPenaltiesException: If any overstay of the chef is unresolved
        """
        penalties = self.get_unpaid_penalties(chef_id)
        if not penalties:
            return

        total_owed = sum(p.penalty_amount_cents for p in penalties)
        self.logger.info(
            f"Chef {chef_id} blocked: {len(penalties)} unpaid overstay penalties",
            extra={"chef_id": chef_id, "total_owed_cents": total_owed},
        )
        raise UnpaidOverstayPenaltiesException(
            details={
                "chef_id": chef_id,
                "total_count": len(penalties),
                "total_owed_cents": total_owed,
                "items": [p.to_dict() for p in penalties],
            }
        )
