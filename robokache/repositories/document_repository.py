"""Document repository for database operations.

A narrow read/write interface: it answers queries and applies writes, but
decides nothing about who may see or change a document. Visibility floors
are passed in by the caller.
"""

from typing import Any, List, Optional

from sqlalchemy import or_

from ..models import Document, Visibility
from .base import BaseRepository

# Columns that update() is allowed to touch. owner and id are fixed at creation.
_UPDATABLE = frozenset({"parent", "visibility", "doc_metadata"})


class DocumentRepository(BaseRepository[Document]):
    """Repository for document CRUD operations."""

    model_class = Document

    def find_by_owner_or_visibility(
        self,
        principal: Optional[str],
        min_visibility: Visibility,
        has_parent: Optional[bool] = None,
    ) -> List[Document]:
        """Documents owned by *principal* or at least *min_visibility*.

        Args:
            principal: Caller's identity; ``None`` matches on visibility only.
            min_visibility: Lowest tier visible to non-owners.
            has_parent: ``True`` for children only, ``False`` for roots only,
                ``None`` for both.
        """
        condition = Document.visibility >= int(min_visibility)
        if principal is not None:
            condition = or_(Document.owner == principal, condition)

        query = self.db.query(Document).filter(condition)
        if has_parent is True:
            query = query.filter(Document.parent.isnot(None))
        elif has_parent is False:
            query = query.filter(Document.parent.is_(None))
        return query.order_by(Document.id).all()

    def find_children(self, parent_id: int) -> List[Document]:
        """All direct children of a document, regardless of visibility."""
        return (
            self.db.query(Document)
            .filter(Document.parent == parent_id)
            .order_by(Document.id)
            .all()
        )

    def update(self, doc_id: int, **fields: Any) -> int:
        """Overwrite the given columns. Returns the number of rows updated.

        Raises:
            ValueError: If a field outside parent/visibility/metadata is given.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update document fields: {sorted(unknown)}")
        if "visibility" in fields:
            fields["visibility"] = int(fields["visibility"])

        values = {getattr(Document, name): value for name, value in fields.items()}
        return (
            self.db.query(Document)
            .filter(Document.id == doc_id)
            .update(values, synchronize_session="fetch")
        )
