# backend/kitchen_booking/repositories/base_repository.py
"""
Base Repository Pattern for the kitchen booking engine.

Provides the foundation for all repository classes with:
- Primary key lookup and create
- Type safety with generics
- Session shared with the owning service

The repository pattern separates data access from business logic,
making the code more testable and maintainable.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Repositories flush but never commit; the owning service decides the
    transaction boundary.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, for_update: bool = False) -> Optional[T]:
        """Retrieve an entity by its primary key."""
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity and flush it so generated values are populated.

        Raises:
            RepositoryException: If creation fails
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as e:
            self.logger.error(f"Integrity error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Integrity constraint violated: {str(e)}")
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

