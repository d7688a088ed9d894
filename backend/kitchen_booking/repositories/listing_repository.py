"""Listing lookups for storage and equipment addons."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.listing import EquipmentListing, StorageListing
from .base_repository import BaseRepository


class ListingRepository(BaseRepository[StorageListing]):
    def __init__(self, db: Session):
        super().__init__(db, StorageListing)

    def get_storage_listing(self, listing_id: str) -> Optional[StorageListing]:
        return self.get_by_id(listing_id)

    def get_equipment_listing(self, listing_id: str) -> Optional[EquipmentListing]:
        try:
            return self.db.query(EquipmentListing).filter(EquipmentListing.id == listing_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading equipment listing {listing_id}: {str(e)}")
            raise RepositoryException(f"Failed to load equipment listing: {str(e)}")
