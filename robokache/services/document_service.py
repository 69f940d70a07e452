"""Document service: deep module for document lifecycle.

Owns every document operation end to end: decode external IDs, load rows,
ask the policy, write rows and payloads, encode IDs for the response.
Callers hand in the caller's principal and external IDs and get back
response schemas or an exception from the ``exceptions`` hierarchy.

Each mutating operation runs in a single transaction. Rows that a decision
depends on (the target document, the proposed parent) are loaded
``FOR UPDATE`` so the check and the write cannot be separated by a
concurrent change.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import policy
from ..core.id_codec import IDCodec
from ..exceptions import AuthenticationError, InvalidParentError, StorageError
from ..models import Document, Visibility
from ..repositories import DocumentRepository
from ..schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate
from ..storage.blob_store import FilesystemBlobStore

# Visibility of a new root document when the caller does not choose one.
DEFAULT_VISIBILITY = Visibility.SHAREABLE

logger = logging.getLogger(__name__)


class DocumentService:
    """Deep module for document operations."""

    def __init__(self, db: Session, codec: IDCodec, blob_store: FilesystemBlobStore):
        self.db = db
        self.codec = codec
        self.blob_store = blob_store
        self.doc_repo = DocumentRepository(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back on any failure."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database transaction failed")
            raise StorageError("Database operation failed", e) from e
        except Exception:
            self.db.rollback()
            raise

    def to_response(self, doc: Document, principal: Optional[str]) -> DocumentResponse:
        """Build the public representation of *doc* for *principal*."""
        fields = {
            "id": self.codec.encode(doc.id),
            "parent": self.codec.encode_optional(doc.parent),
            "visibility": doc.tier,
            "metadata": doc.doc_metadata or {},
            "created_at": doc.created_at,
        }
        if principal is not None:
            fields["owned"] = policy.owned_flag(principal, doc)
        return DocumentResponse(**fields)

    def _load_viewable(self, principal: Optional[str], doc_id: str) -> Document:
        internal_id = self.codec.decode(doc_id)
        doc = self.doc_repo.find_by_id(internal_id)
        return policy.ensure_viewable(principal, doc, doc_id)

    def _load_editable(self, principal: str, doc_id: str) -> Document:
        internal_id = self.codec.decode(doc_id)
        doc = self.doc_repo.find_by_id(internal_id, for_update=True)
        return policy.ensure_editable(principal, doc, doc_id)

    def _resolve_parent(self, parent_id: Optional[str]) -> Optional[Document]:
        """Load a proposed parent, or ``None`` if no such document exists."""
        if parent_id is None:
            return None
        internal_id = self.codec.decode(parent_id)
        return self.doc_repo.find_by_id(internal_id, for_update=True)

    def _is_ancestor_or_self(self, candidate_id: int, doc_id: int) -> bool:
        """Whether *doc_id* is *candidate_id* or one of its ancestors."""
        seen = set()
        current: Optional[int] = candidate_id
        while current is not None and current not in seen:
            if current == doc_id:
                return True
            seen.add(current)
            node = self.doc_repo.find_by_id(current)
            current = node.parent if node is not None else None
        return False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_documents(self, principal: Optional[str], has_parent: Optional[bool] = None) -> List[DocumentResponse]:
        """Documents the caller owns plus every public document."""
        candidates = self.doc_repo.find_by_owner_or_visibility(
            principal, policy.LIST_FLOOR, has_parent=has_parent
        )
        return [self.to_response(doc, principal) for doc in policy.filter_listable(principal, candidates)]

    def get_document(self, principal: Optional[str], doc_id: str) -> DocumentResponse:
        doc = self._load_viewable(principal, doc_id)
        return self.to_response(doc, principal)

    def list_children(self, principal: Optional[str], doc_id: str) -> List[DocumentResponse]:
        """Children of a viewable document that the caller may view."""
        parent = self._load_viewable(principal, doc_id)
        children = self.doc_repo.find_children(parent.id)
        return [
            self.to_response(child, principal)
            for child in children
            if policy.can_view(principal, child)
        ]

    def get_data(self, principal: Optional[str], doc_id: str) -> bytes:
        doc = self._load_viewable(principal, doc_id)
        return self.blob_store.read(doc.id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_document(
        self,
        principal: Optional[str],
        payload: DocumentCreate,
        data: Optional[bytes] = None,
    ) -> str:
        """Create a document owned by *principal*. Returns its external ID.

        Raises:
            AuthenticationError: If the caller is anonymous.
            InvalidParentError: If the parent is unusable.
        """
        if not policy.can_create(principal):
            raise AuthenticationError("You must be logged in to create documents")

        with self._transaction():
            parent = self._resolve_parent(payload.parent)
            visibility = payload.visibility
            if visibility is None:
                visibility = parent.tier if parent is not None else DEFAULT_VISIBILITY

            policy.validate_parent_assignment(
                principal, visibility, parent, parent_requested=payload.parent is not None
            )

            doc = Document(
                owner=principal,
                parent=parent.id if parent is not None else None,
                visibility=int(visibility),
                doc_metadata=payload.metadata,
            )
            new_id = self.doc_repo.insert(doc)
            if data is not None:
                self.blob_store.write(new_id, data)

        logger.info(
            "Document created",
            extra={"has_parent": parent is not None, "visibility": visibility.name.lower()},
        )
        return self.codec.encode(new_id)

    def create_child(self, principal: Optional[str], parent_id: str, data: bytes) -> str:
        """Create a child of *parent_id* holding *data*, inheriting its visibility.

        The parent must be visible to the caller (404 otherwise) and owned by
        the caller (400, like any other invalid parent).
        """
        if not policy.can_create(principal):
            raise AuthenticationError("You must be logged in to create documents")

        parent = self._load_viewable(principal, parent_id)
        payload = DocumentCreate(parent=parent_id, visibility=parent.tier)
        return self.create_document(principal, payload, data=data)

    def update_document(self, principal: str, doc_id: str, payload: DocumentUpdate) -> DocumentResponse:
        """Replace parent, visibility and/or metadata of an owned document.

        The parent check uses the visibility the document will have after
        the update: the new one if given, the current one otherwise.

        Raises:
            DocumentNotFoundError: If the document is missing or hidden.
            ForbiddenError: If the caller does not own it.
            InvalidParentError: If the new state breaks a hierarchy rule.
        """
        with self._transaction():
            existing = self._load_editable(principal, doc_id)

            visibility = payload.visibility if payload.visibility is not None else existing.tier

            if payload.detaches_parent:
                parent_internal = None
            elif payload.parent is not None:
                parent = self._resolve_parent(payload.parent)
                policy.validate_parent_assignment(principal, visibility, parent)
                if self._is_ancestor_or_self(parent.id, existing.id):
                    raise InvalidParentError("A document cannot be its own ancestor")
                parent_internal = parent.id
            else:
                parent_internal = existing.parent
                if parent_internal is not None:
                    current_parent = self.doc_repo.find_by_id(parent_internal, for_update=True)
                    if current_parent is not None:
                        policy.validate_parent_assignment(principal, visibility, current_parent)

            if visibility < existing.tier:
                policy.validate_children_visibility(visibility, self.doc_repo.find_children(existing.id))

            fields = {"parent": parent_internal, "visibility": visibility}
            if payload.metadata is not None:
                fields["doc_metadata"] = payload.metadata
            self.doc_repo.update(existing.id, **fields)

        self.db.refresh(existing)
        logger.info("Document updated", extra={"fields": sorted(payload.model_fields_set)})
        return self.to_response(existing, principal)

    def delete_document(self, principal: str, doc_id: str) -> None:
        """Delete an owned document and its payload. Children are kept."""
        with self._transaction():
            existing = self._load_editable(principal, doc_id)
            rows = self.doc_repo.delete(existing.id)
            if rows:
                self.blob_store.delete(existing.id)
        logger.info("Document deleted", extra={"rows": rows})

    def set_data(self, principal: str, doc_id: str, data: bytes) -> None:
        """Replace the payload of an owned document."""
        with self._transaction():
            existing = self._load_editable(principal, doc_id)
            self.blob_store.write(existing.id, data)
