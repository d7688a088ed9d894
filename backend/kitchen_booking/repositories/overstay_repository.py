"""Storage overstay record queries."""

from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import StorageBooking
from ..models.overstay import UNPAID_OVERSTAY_STATUSES, StorageOverstayHistory, StorageOverstayRecord
from .base_repository import BaseRepository


class OverstayRepository(BaseRepository[StorageOverstayRecord]):
    def __init__(self, db: Session):
        super().__init__(db, StorageOverstayRecord)

    def get_by_idempotency_key(self, key: str) -> Optional[StorageOverstayRecord]:
        try:
            return (
                self.db.query(StorageOverstayRecord)
                .filter(StorageOverstayRecord.idempotency_key == key)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading overstay record {key}: {str(e)}")
            raise RepositoryException(f"Failed to load overstay record: {str(e)}")

    def list_by_status(self, *statuses: str) -> List[StorageOverstayRecord]:
        try:
            query = self.db.query(StorageOverstayRecord)
            if statuses:
                query = query.filter(StorageOverstayRecord.status.in_(statuses))
            return query.order_by(StorageOverstayRecord.detected_at).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing overstay records: {str(e)}")
            raise RepositoryException(f"Failed to list overstay records: {str(e)}")

    def get_unpaid_for_chef(self, chef_id: str) -> List[StorageOverstayRecord]:
        """Unresolved overstay records on the chef's storage bookings, newest first."""
        try:
            return (
                self.db.query(StorageOverstayRecord)
                .join(StorageBooking, StorageOverstayRecord.storage_booking_id == StorageBooking.id)
                .filter(
                    StorageBooking.chef_id == chef_id,
                    StorageOverstayRecord.status.in_(UNPAID_OVERSTAY_STATUSES),
                )
                .order_by(StorageOverstayRecord.detected_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading unpaid overstays for chef {chef_id}: {str(e)}")
            raise RepositoryException(f"Failed to load unpaid overstay penalties: {str(e)}")

    # ----- history -----

    def create_history_entry(self, **kwargs: Any) -> StorageOverstayHistory:
        try:
            entry = StorageOverstayHistory(**kwargs)
            self.db.add(entry)
            self.db.flush()
            return entry
        except SQLAlchemyError as e:
            self.logger.error(f"Error writing overstay history: {str(e)}")
            raise RepositoryException(f"Failed to write overstay history: {str(e)}")

    def get_history(self, overstay_record_id: str) -> List[StorageOverstayHistory]:
        """History of one overstay record, newest first."""
        try:
            return (
                self.db.query(StorageOverstayHistory)
                .filter(StorageOverstayHistory.overstay_record_id == overstay_record_id)
                .order_by(StorageOverstayHistory.created_at.desc(), StorageOverstayHistory.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading overstay history for {overstay_record_id}: {str(e)}")
            raise RepositoryException(f"Failed to load overstay history: {str(e)}")
