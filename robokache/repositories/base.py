"""Base repository with shared lookup and write patterns.

Subclasses specify model_class and id_column; the base provides the common
implementations. Repositories only flush: committing is the caller's
decision, so several repository calls can share one transaction.
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session

from ..database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Document)
        id_column:       Name of the primary-key column (default "id")
    """

    model_class: Type[ModelT]
    id_column: str = "id"

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, entity_id: int, for_update: bool = False) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found.

        With *for_update* the row stays locked until the transaction ends.
        SQLite has no row locks; there every transaction already holds the
        database write lock from its first statement (see ``database.py``).
        """
        col = getattr(self.model_class, self.id_column)
        query = self.db.query(self.model_class).filter(col == entity_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def insert(self, entity: ModelT) -> int:
        """Add an entity and return its generated primary key."""
        self.db.add(entity)
        self.db.flush()
        self.db.refresh(entity)
        return getattr(entity, self.id_column)

    def delete(self, entity_id: int) -> int:
        """Delete by primary key. Returns the number of rows removed."""
        col = getattr(self.model_class, self.id_column)
        return (
            self.db.query(self.model_class)
            .filter(col == entity_id)
            .delete(synchronize_session="fetch")
        )
