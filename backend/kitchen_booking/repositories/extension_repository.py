"""Pending storage extensions awaiting payment confirmation."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import PendingStorageExtension
from .base_repository import BaseRepository


class PendingExtensionRepository(BaseRepository[PendingStorageExtension]):
    def __init__(self, db: Session):
        super().__init__(db, PendingStorageExtension)

    def get_by_payment_session(
        self, payment_session_id: str, for_update: bool = False
    ) -> Optional[PendingStorageExtension]:
        try:
            query = self.db.query(PendingStorageExtension).filter(
                PendingStorageExtension.payment_session_id == payment_session_id
            )
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading pending extension {payment_session_id}: {str(e)}")
            raise RepositoryException(f"Failed to load pending extension: {str(e)}")
