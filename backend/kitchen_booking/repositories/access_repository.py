# backend/kitchen_booking/repositories/access_repository.py
"""
Access Repository

Grant records and tiered applications used by the booking access gate.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.access import APPLICATION_APPROVED, ChefKitchenApplication, ChefLocationAccess
from .base_repository import BaseRepository


class AccessRepository(BaseRepository[ChefLocationAccess]):
    def __init__(self, db: Session):
        super().__init__(db, ChefLocationAccess)

    def get_grant(self, chef_id: str, location_id: str) -> Optional[ChefLocationAccess]:
        try:
            return (
                self.db.query(ChefLocationAccess)
                .filter(
                    ChefLocationAccess.chef_id == chef_id,
                    ChefLocationAccess.location_id == location_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading access grant for chef {chef_id}: {str(e)}")
            raise RepositoryException(f"Failed to load access grant: {str(e)}")

    def get_approved_application(self, chef_id: str, location_id: str) -> Optional[ChefKitchenApplication]:
        """Highest-tier approved application of the chef at the location."""
        try:
            return (
                self.db.query(ChefKitchenApplication)
                .filter(
                    ChefKitchenApplication.chef_id == chef_id,
                    ChefKitchenApplication.location_id == location_id,
                    ChefKitchenApplication.status == APPLICATION_APPROVED,
                )
                .order_by(ChefKitchenApplication.current_tier.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading application for chef {chef_id}: {str(e)}")
            raise RepositoryException(f"Failed to load application: {str(e)}")

    def upsert_grant(self, chef_id: str, location_id: str, granted_by: str) -> ChefLocationAccess:
        """
        Return the chef's grant at the location, creating it when missing.

        A concurrent insert of the same grant surfaces as a RepositoryException
        from the flush; the caller's transaction rolls it back.
        """
        existing = self.get_grant(chef_id, location_id)
        if existing:
            return existing
        try:
            grant = ChefLocationAccess(
                chef_id=chef_id,
                location_id=location_id,
                granted_by=granted_by,
                granted_at=datetime.now(timezone.utc),
            )
            self.db.add(grant)
            self.db.flush()
            return grant
        except IntegrityError as e:
            self.logger.warning(f"Access grant for chef {chef_id} already exists: {str(e)}")
            raise RepositoryException(f"Access grant already exists: {str(e)}")
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating access grant for chef {chef_id}: {str(e)}")
            raise RepositoryException(f"Failed to create access grant: {str(e)}")
