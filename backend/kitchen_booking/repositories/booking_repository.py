# backend/kitchen_booking/repositories/booking_repository.py
"""
Booking Repository

Data access for kitchen bookings and their storage/equipment addon rows.
"""

from datetime import date
import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import (
    BookingStatus,
    EquipmentBooking,
    KitchenBooking,
    StorageBooking,
)
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[KitchenBooking]):
    """Repository for kitchen bookings and their addon rows."""

    def __init__(self, db: Session):
        super().__init__(db, KitchenBooking)

    # ----- kitchen bookings -----

    def get_active_bookings_for_date(self, kitchen_id: str, booking_date: date) -> List[KitchenBooking]:
        """Non-cancelled bookings of a kitchen on a date; these consume capacity."""
        try:
            return (
                self.db.query(KitchenBooking)
                .filter(
                    KitchenBooking.kitchen_id == kitchen_id,
                    KitchenBooking.booking_date == booking_date,
                    KitchenBooking.status != BookingStatus.CANCELLED.value,
                )
                .order_by(KitchenBooking.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for kitchen {kitchen_id} on {booking_date}: {str(e)}")
            raise RepositoryException(f"Failed to load bookings: {str(e)}")

    def get_bookings_by_chef(self, chef_id: str) -> List[KitchenBooking]:
        try:
            return (
                self.db.query(KitchenBooking)
                .filter(KitchenBooking.chef_id == chef_id)
                .order_by(KitchenBooking.booking_date.desc(), KitchenBooking.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for chef {chef_id}: {str(e)}")
            raise RepositoryException(f"Failed to load chef bookings: {str(e)}")

    # ----- storage bookings -----

    def create_storage_booking(self, **kwargs: Any) -> StorageBooking:
        return self._create_row(StorageBooking, **kwargs)

    def get_storage_booking(self, storage_booking_id: str, for_update: bool = False) -> Optional[StorageBooking]:
        try:
            query = self.db.query(StorageBooking).filter(StorageBooking.id == storage_booking_id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading storage booking {storage_booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load storage booking: {str(e)}")

    def get_storage_bookings_for_kitchen_booking(self, kitchen_booking_id: str) -> List[StorageBooking]:
        try:
            return (
                self.db.query(StorageBooking)
                .filter(StorageBooking.kitchen_booking_id == kitchen_booking_id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading storage for booking {kitchen_booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load storage bookings: {str(e)}")

    def get_overdue_storage_bookings(self, today: date) -> List[StorageBooking]:
        """Confirmed storage bookings whose end date is before ``today``."""
        try:
            return (
                self.db.query(StorageBooking)
                .filter(
                    StorageBooking.end_date < today,
                    StorageBooking.status == BookingStatus.CONFIRMED.value,
                )
                .order_by(StorageBooking.end_date)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading overdue storage bookings: {str(e)}")
            raise RepositoryException(f"Failed to load overdue storage bookings: {str(e)}")

    # ----- equipment bookings -----

    def create_equipment_booking(self, **kwargs: Any) -> EquipmentBooking:
        return self._create_row(EquipmentBooking, **kwargs)

    def get_equipment_bookings_for_kitchen_booking(self, kitchen_booking_id: str) -> List[EquipmentBooking]:
        try:
            return (
                self.db.query(EquipmentBooking)
                .filter(EquipmentBooking.kitchen_booking_id == kitchen_booking_id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading equipment for booking {kitchen_booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load equipment bookings: {str(e)}")

    def _create_row(self, model: Any, **kwargs: Any) -> Any:
        try:
            row = model(**kwargs)
            self.db.add(row)
            self.db.flush()
            return row
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {model.__name__}: {str(e)}")
