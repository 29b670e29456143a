"""
Base Repository implementation.
Provides common data access patterns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TypeVar, Generic, Sequence

from sqlalchemy.orm import Session
from sqlalchemy import Select, select, func

from shared.utils.validators import sanitize_search_term


ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    # Search
    search: str | None = None

    def __post_init__(self):
        """Validate and normalize filters."""
        self.search = sanitize_search_term(self.search) or None


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: Return the SQLAlchemy model class
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    def _base_query(self) -> Select:
        """Return base query. Subclasses override to add ordering or eager loading."""
        return select(self.model)

    def find_all(self) -> Sequence[ModelT]:
        return self._db.execute(self._base_query()).scalars().unique().all()

    def find_by_id(self, entity_id: int) -> ModelT | None:
        """
        Find entity by ID.

        Returns:
            Entity or None (never raises for a missing row)
        """
        return self._db.scalar(self._base_query().where(self.model.id == entity_id))

    def find_by_ids(self, entity_ids: Sequence[int]) -> Sequence[ModelT]:
        """
        Find entities by IDs.

        Returns:
            List of entities (order not guaranteed, missing ids skipped)
        """
        if not entity_ids:
            return []

        query = self._base_query().where(self.model.id.in_(entity_ids))
        return self._db.execute(query).scalars().unique().all()

    def existing_ids(self, entity_ids: Sequence[int]) -> set[int]:
        """Subset of the given ids that still exist."""
        if not entity_ids:
            return set()
        rows = self._db.execute(select(self.model.id).where(self.model.id.in_(entity_ids)))
        return {row[0] for row in rows}

    def exists(self, entity_id: int) -> bool:
        """Check if entity exists."""
        query = select(func.count()).select_from(self.model).where(self.model.id == entity_id)
        return (self._db.scalar(query) or 0) > 0

    def add(self, entity: ModelT) -> ModelT:
        """Add and flush so the entity gets its id. Does not commit."""
        self._db.add(entity)
        self._db.flush()
        return entity
