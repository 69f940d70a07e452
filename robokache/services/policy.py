"""Visibility and ownership rules: pure functions.

This is the ONE place where access rules are defined. Endpoints and the
document service call these functions; nothing else compares owners or
visibility tiers.

Design:
    - Tiers are ordered: invisible < private < shareable < public
    - Owners can always view, edit and delete their own documents
    - Non-owners can fetch a document by ID (or list the children of one)
      from ``shareable`` up: knowing the ID means it was shared with them
    - Non-owners only see ``public`` documents in the top-level listing,
      which would otherwise let anyone enumerate shared documents
    - Visibility never grants write access
    - A child is never more visible than its parent, and both share an owner
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from ..exceptions import DocumentNotFoundError, ForbiddenError, InvalidParentError
from ..models.document import Visibility

if TYPE_CHECKING:
    from ..models.document import Document

# Lowest tier a non-owner can read when addressing a document directly.
VIEW_FLOOR = Visibility.SHAREABLE

# Lowest tier a non-owner sees in the top-level listing.
LIST_FLOOR = Visibility.PUBLIC


def is_owner(principal: Optional[str], document: Document) -> bool:
    return principal is not None and document.owner == principal


def can_view(principal: Optional[str], document: Document) -> bool:
    """Whether *principal* may read *document* addressed by its ID.

    Also gates children listing and data reads.
    """
    return is_owner(principal, document) or document.tier >= VIEW_FLOOR


def filter_listable(principal: Optional[str], documents: Iterable[Document]) -> list[Document]:
    """Keep the documents *principal* may see in the top-level listing."""
    return [
        doc for doc in documents
        if is_owner(principal, doc) or doc.tier >= LIST_FLOOR
    ]


def can_create(principal: Optional[str]) -> bool:
    """Anonymous callers can never create documents."""
    return principal is not None


def can_edit(principal: Optional[str], document: Document) -> bool:
    """Only the owner may modify a document, whatever its visibility."""
    return is_owner(principal, document)


def can_delete(principal: Optional[str], document: Document) -> bool:
    """Only the owner may delete a document, whatever its visibility."""
    return is_owner(principal, document)


def owned_flag(principal: Optional[str], document: Document) -> bool:
    """Response annotation: does the caller own this document?"""
    return is_owner(principal, document)


def validate_parent_assignment(
    principal: Optional[str],
    proposed_visibility: Visibility,
    parent: Optional[Document],
    parent_requested: bool = True,
) -> None:
    """Check that *parent* may hold a child of *proposed_visibility* owned by *principal*.

    Args:
        principal: The would-be owner of the child.
        proposed_visibility: The child's visibility after the operation.
        parent: The parent document as loaded, or ``None`` if it does not
            exist.
        parent_requested: ``False`` when no parent was asked for (root
            document), which always succeeds.

    Raises:
        InvalidParentError: If the parent is missing, owned by someone else,
            or less visible than the child.
    """
    if not parent_requested:
        return
    if parent is None:
        raise InvalidParentError()
    if not is_owner(principal, parent):
        raise InvalidParentError()
    if parent.tier < Visibility(proposed_visibility):
        raise InvalidParentError()


def validate_children_visibility(
    proposed_visibility: Visibility,
    children: Iterable[Document],
) -> None:
    """Check that lowering a parent's visibility leaves no child more visible.

    Raises:
        InvalidParentError: If any child is more visible than
            *proposed_visibility*.
    """
    if any(child.tier > Visibility(proposed_visibility) for child in children):
        raise InvalidParentError(
            "Cannot make a document less visible than its children"
        )


def ensure_viewable(principal: Optional[str], document: Optional[Document], doc_id: str) -> Document:
    """Return *document* if *principal* may view it.

    Missing and hidden documents raise the same error, so the response
    never confirms that a hidden document exists.

    Raises:
        DocumentNotFoundError: If the document is missing or hidden.
    """
    if document is None or not can_view(principal, document):
        raise DocumentNotFoundError(doc_id)
    return document


def ensure_editable(principal: Optional[str], document: Optional[Document], doc_id: str) -> Document:
    """Return *document* if *principal* may modify or delete it.

    Raises:
        DocumentNotFoundError: If the caller cannot even see the document.
        ForbiddenError: If the caller can see it but does not own it.
    """
    ensure_viewable(principal, document, doc_id)
    if not can_edit(principal, document):
        raise ForbiddenError("You do not own this document")
    return document
