# backend/kitchen_booking/repositories/kitchen_repository.py
"""
Kitchen Repository

Data access for kitchens, their weekly availability windows and their
date-specific overrides.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.location import Kitchen, KitchenAvailability, KitchenDateOverride
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class KitchenRepository(BaseRepository[Kitchen]):
    """Repository for kitchen lookup and schedule queries."""

    def __init__(self, db: Session):
        super().__init__(db, Kitchen)

    def get_weekly_windows(self, kitchen_id: str) -> List[KitchenAvailability]:
        try:
            return (
                self.db.query(KitchenAvailability)
                .filter(KitchenAvailability.kitchen_id == kitchen_id)
                .order_by(KitchenAvailability.day_of_week)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability for kitchen {kitchen_id}: {str(e)}")
            raise RepositoryException(f"Failed to load kitchen availability: {str(e)}")

    def get_window_for_day(self, kitchen_id: str, day_of_week: int) -> Optional[KitchenAvailability]:
        try:
            return (
                self.db.query(KitchenAvailability)
                .filter(
                    KitchenAvailability.kitchen_id == kitchen_id,
                    KitchenAvailability.day_of_week == day_of_week,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading day window for kitchen {kitchen_id}: {str(e)}")
            raise RepositoryException(f"Failed to load kitchen availability: {str(e)}")

    def get_date_override(self, kitchen_id: str, on_date: date) -> Optional[KitchenDateOverride]:
        try:
            return (
                self.db.query(KitchenDateOverride)
                .filter(
                    KitchenDateOverride.kitchen_id == kitchen_id,
                    KitchenDateOverride.specific_date == on_date,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading date override for kitchen {kitchen_id}: {str(e)}")
            raise RepositoryException(f"Failed to load kitchen date override: {str(e)}")

    def lock_for_booking(self, kitchen_id: str) -> None:
        """
        Take the per-kitchen write lock for the current transaction.

        The UPDATE holds a row lock on PostgreSQL and the database write lock
        on SQLite until commit or rollback, so capacity re-validation that
        follows it cannot interleave with another writer for this kitchen.
        """
        try:
            self.db.execute(
                update(Kitchen)
                .where(Kitchen.id == kitchen_id)
                .values(booking_version=Kitchen.booking_version + 1)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking kitchen {kitchen_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock kitchen for booking: {str(e)}")
